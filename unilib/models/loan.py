from unilib.extensions import db
from unilib.utils.clock import utcnow


class Loan(db.Model):
    __tablename__ = "loans"

    id = db.Column(db.Integer, primary_key=True)

    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # copied from the book when the loan is created
    university_id = db.Column(db.Integer, db.ForeignKey("universities.id"), nullable=False)

    due_date = db.Column(db.DateTime, nullable=False)
    return_date = db.Column(db.DateTime, nullable=True)  # NULL = active

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    student = db.relationship("User", backref="loans")
    book = db.relationship("Book", backref="loans")

    __table_args__ = (
        db.Index("ix_loans_book_active", "book_id", "return_date"),
        db.Index("ix_loans_university_active", "university_id", "return_date"),
    )

    @property
    def is_active(self) -> bool:
        return self.return_date is None
