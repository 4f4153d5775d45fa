from __future__ import annotations

from flask import current_app

from unilib.extensions import db


def run_side_effect(name: str, fn, *args, **kwargs) -> bool:
    """
    Fire-and-forget step that runs after the primary write is committed
    (popularity counter, activity notification).

    - Runs in its own commit; the caller's loan row is already durable.
    - A failure is rolled back and logged, never raised to the caller.
    - Returns True when the step committed.
    """
    try:
        fn(*args, **kwargs)
        db.session.commit()
        return True
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning(f"[side_effect] {name} failed: {e}")
        return False
