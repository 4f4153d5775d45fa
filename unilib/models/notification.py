from unilib.extensions import db
from unilib.utils.clock import utcnow


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    university_id = db.Column(db.Integer, db.ForeignKey("universities.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False)

    # borrow / return
    type = db.Column(db.String(20), nullable=False)
    message = db.Column(db.String(1000), nullable=False)
    unread = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")
    book = db.relationship("Book")

    __table_args__ = (
        db.Index("ix_notifications_university_created", "university_id", "created_at"),
    )
