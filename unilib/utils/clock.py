from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, same shape the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)
