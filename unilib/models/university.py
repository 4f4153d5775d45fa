from decimal import Decimal

from unilib.extensions import db
from unilib.utils.clock import utcnow


class University(db.Model):
    __tablename__ = "universities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    domain = db.Column(db.String(255), unique=True, nullable=False, index=True)

    # loan policy, edited from admin settings
    loan_days_default = db.Column(db.Integer, nullable=False, default=7)
    fine_per_day = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.50"))

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint("loan_days_default >= 1", name="ck_universities_loan_days"),
        db.CheckConstraint("fine_per_day >= 0", name="ck_universities_fine_per_day"),
    )
