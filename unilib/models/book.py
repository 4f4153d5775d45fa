from unilib.extensions import db
from unilib.utils.clock import utcnow


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    university_id = db.Column(db.Integer, db.ForeignKey("universities.id"), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, default="", index=True)
    isbn = db.Column(db.String(40), nullable=False, index=True)
    cover_image_url = db.Column(db.String(500), nullable=False, default="")
    description = db.Column(db.Text, nullable=False, default="")

    total_copies = db.Column(db.Integer, nullable=False, default=1)
    borrow_count = db.Column(db.Integer, nullable=False, default=0)  # popularity
    genres = db.Column(db.JSON, nullable=False, default=list)
    rating = db.Column(db.Float, nullable=True)

    # bumped by every committed checkout, see LoanService
    loan_version = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    university = db.relationship("University", backref="books")

    # available copies are derived from active loans, never stored here
    __table_args__ = (
        db.UniqueConstraint("university_id", "isbn", name="uq_books_university_isbn"),
        db.CheckConstraint("total_copies >= 0", name="ck_books_total_copies"),
        db.CheckConstraint("borrow_count >= 0", name="ck_books_borrow_count"),
    )
