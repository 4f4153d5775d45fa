from datetime import datetime

from sqlalchemy import func, select, update

from unilib.models.book import Book
from unilib.models.loan import Loan
from unilib.extensions import db
from unilib.tenant import TenantContext


class LoanRepo:
    """Loan ledger queries, always filtered by the caller's university."""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def _scoped(self):
        return Loan.query.filter(Loan.university_id == self.ctx.university_id)

    def get(self, loan_id: int):
        return self._scoped().filter(Loan.id == loan_id).first()

    def list_by_student(self, student_id: int):
        return (
            self._scoped()
            .filter(Loan.student_id == student_id)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .all()
        )

    def count_active_for_book(self, book_id: int) -> int:
        return db.session.execute(
            select(func.count(Loan.id)).where(
                Loan.university_id == self.ctx.university_id,
                Loan.book_id == book_id,
                Loan.return_date.is_(None),
            )
        ).scalar_one()

    def list_active(self, book_ids=None):
        """Active loans of the tenant, optionally limited to some books."""
        q = self._scoped().filter(Loan.return_date.is_(None))
        if book_ids is not None:
            book_ids = list(book_ids)
            if not book_ids:
                return []
            q = q.filter(Loan.book_id.in_(book_ids))
        return q.order_by(Loan.id.asc()).all()

    def list_active_with_books(self):
        rows = db.session.execute(
            select(Loan, Book)
            .join(Book, Book.id == Loan.book_id)
            .where(
                Loan.university_id == self.ctx.university_id,
                Book.university_id == self.ctx.university_id,
                Loan.return_date.is_(None),
            )
        ).all()
        return [(loan, book) for loan, book in rows]

    def add(self, loan: Loan) -> Loan:
        if loan.university_id != self.ctx.university_id:
            raise ValueError("Loan university does not match caller")
        db.session.add(loan)
        return loan

    def mark_returned(self, loan_id: int, when: datetime) -> bool:
        """
        Sets return_date only if the loan is still active.
        False means somebody else returned it first.
        """
        result = db.session.execute(
            update(Loan)
            .where(
                Loan.id == loan_id,
                Loan.university_id == self.ctx.university_id,
                Loan.return_date.is_(None),
            )
            .values(return_date=when)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
