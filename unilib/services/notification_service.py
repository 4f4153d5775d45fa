from unilib.models.notification import Notification
from unilib.repositories.notification_repo import NotificationRepo
from unilib.tenant import TenantContext

BORROW = "borrow"
RETURN = "return"


class NotificationService:
    @staticmethod
    def _who(ctx: TenantContext) -> str:
        return ctx.email or "A student"

    @staticmethod
    def record(ctx: TenantContext, notif_type: str, book, verb: str) -> Notification:
        title = getattr(book, "title", None) or "a book"
        isbn = getattr(book, "isbn", None) or "no ISBN"
        message = f'{NotificationService._who(ctx)} {verb} "{title}" ({isbn})'
        return NotificationRepo(ctx).log(Notification(
            user_id=ctx.user_id,
            book_id=book.id,
            type=notif_type,
            message=message,
        ))

    @staticmethod
    def record_borrow(ctx: TenantContext, book) -> Notification:
        return NotificationService.record(ctx, BORROW, book, "borrowed")

    @staticmethod
    def record_return(ctx: TenantContext, book) -> Notification:
        return NotificationService.record(ctx, RETURN, book, "returned")

    @staticmethod
    def list_recent(ctx: TenantContext, limit=None, default_limit: int = 20):
        try:
            limit = int(limit) if limit is not None else default_limit
        except (TypeError, ValueError):
            limit = default_limit
        limit = min(100, max(1, limit or default_limit))
        return NotificationRepo(ctx).list_recent(limit)
