from sqlalchemy import or_, update

from unilib.models.book import Book
from unilib.extensions import db
from unilib.tenant import TenantContext


class BookRepo:
    """Book queries, always filtered by the caller's university."""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def _scoped(self):
        return Book.query.filter(Book.university_id == self.ctx.university_id)

    def get(self, book_id: int):
        return self._scoped().filter(Book.id == book_id).first()

    def get_fresh(self, book_id: int):
        # skip the identity map; the checkout loop needs the committed loan_version
        return (
            self._scoped()
            .filter(Book.id == book_id)
            .populate_existing()
            .first()
        )

    def list_all(self):
        return self._scoped().order_by(Book.title.asc(), Book.id.asc()).all()

    def search(self, text: str):
        q = self._scoped()
        text = (text or "").strip()
        if text:
            # literal substring, % and _ are escaped
            q = q.filter(or_(
                Book.title.icontains(text, autoescape=True),
                Book.author.icontains(text, autoescape=True),
                Book.isbn.icontains(text, autoescape=True),
            ))
        return q.order_by(Book.title.asc(), Book.id.asc()).all()

    def claim_version(self, book_id: int, seen_version: int) -> bool:
        """
        Compare-and-set on loan_version. False means another checkout
        committed for this book after we read it.
        """
        result = db.session.execute(
            update(Book)
            .where(
                Book.id == book_id,
                Book.university_id == self.ctx.university_id,
                Book.loan_version == seen_version,
            )
            .values(loan_version=Book.loan_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_borrow_count(self, book_id: int) -> None:
        db.session.execute(
            update(Book)
            .where(Book.id == book_id, Book.university_id == self.ctx.university_id)
            .values(borrow_count=Book.borrow_count + 1)
            .execution_options(synchronize_session=False)
        )
