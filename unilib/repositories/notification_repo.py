from unilib.models.notification import Notification
from unilib.extensions import db
from unilib.tenant import TenantContext


class NotificationRepo:
    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def list_recent(self, limit: int):
        return (
            Notification.query
            .filter(Notification.university_id == self.ctx.university_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def log(self, entry: Notification):
        entry.university_id = self.ctx.university_id
        db.session.add(entry)
        return entry
