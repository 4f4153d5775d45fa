from unilib.extensions import db
from unilib.utils.clock import utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=True)
    role = db.Column(db.String(20), nullable=False, default="Student")  # Admin/Student

    university_id = db.Column(db.Integer, db.ForeignKey("universities.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    university = db.relationship("University", backref="users")
