from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from unilib import create_app
from unilib.extensions import db
from unilib.models.book import Book
from unilib.models.loan import Loan
from unilib.models.university import University
from unilib.models.user import User
from unilib.tenant import ADMIN, STUDENT, TenantContext

NOW = datetime(2024, 1, 10, 12, 0, 0)


@pytest.fixture
def app(tmp_path):
    # file db: threads in the concurrency tests need their own connections
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'unilib_test.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
        "JWT_SECRET_KEY": "test-jwt-secret-key-that-is-long-enough-for-hs256",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    """Pushes an app context for tests that call services directly."""
    with app.app_context():
        yield app


class Seeder:
    """Inserts rows straight through the session, bypassing the services."""

    def university(self, domain="uni-a.edu", name=None, loan_days=7, fine=Decimal("0.50")):
        uni = University(
            name=name or domain,
            domain=domain,
            loan_days_default=loan_days,
            fine_per_day=fine,
        )
        db.session.add(uni)
        db.session.commit()
        return uni

    def user(self, uni, email, role=STUDENT):
        u = User(email=email, name=email.split("@")[0], role=role, university_id=uni.id)
        db.session.add(u)
        db.session.commit()
        return u

    def book(self, uni, title, isbn, total_copies=1, author="", genres=None, rating=None, borrow_count=0):
        b = Book(
            university_id=uni.id,
            title=title,
            author=author,
            isbn=isbn,
            total_copies=total_copies,
            genres=genres or [],
            rating=rating,
            borrow_count=borrow_count,
        )
        db.session.add(b)
        db.session.commit()
        return b

    def loan(self, book, user, due_date, return_date=None):
        loan = Loan(
            book_id=book.id,
            student_id=user.id,
            university_id=book.university_id,
            due_date=due_date,
            return_date=return_date,
            created_at=due_date - timedelta(days=7),
        )
        db.session.add(loan)
        db.session.commit()
        return loan


@pytest.fixture
def seed():
    return Seeder()


def tenant_of(user) -> TenantContext:
    return TenantContext(
        university_id=user.university_id,
        user_id=user.id,
        role=user.role,
        email=user.email,
    )


def token_for(user) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            "role": user.role,
            "university_id": user.university_id,
            "email": user.email,
        },
    )


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def library(app, seed):
    """
    Two universities with a few books, committed and closed.
    Returns plain ids and ready-made auth headers for the HTTP tests.
    """
    with app.app_context():
        uni_a = seed.university("uni-a.edu", loan_days=7, fine=Decimal("2.00"))
        uni_b = seed.university("uni-b.edu")

        alice = seed.user(uni_a, "alice@uni-a.edu")
        bob = seed.user(uni_a, "bob@uni-a.edu")
        admin_a = seed.user(uni_a, "admin@uni-a.edu", role=ADMIN)
        carol = seed.user(uni_b, "carol@uni-b.edu")
        admin_b = seed.user(uni_b, "admin@uni-b.edu", role=ADMIN)

        dune = seed.book(uni_a, "Dune", "9780441172719", total_copies=2,
                         author="Frank Herbert", genres=["sci-fi", "classic"], rating=4.6, borrow_count=3)
        clean = seed.book(uni_a, "Clean Code", "9780132350884", total_copies=1,
                          author="Robert C. Martin", genres=["software"], rating=4.1, borrow_count=10)
        cpp = seed.book(uni_a, "C++ Primer (50% off)", "9780321714114", total_copies=1,
                        author="Lippman", genres=["software"])
        foreign = seed.book(uni_b, "Dune", "9780441172719", total_copies=5, author="Frank Herbert")

        ids = {
            "uni_a": uni_a.id,
            "uni_b": uni_b.id,
            "dune": dune.id,
            "clean": clean.id,
            "cpp": cpp.id,
            "foreign": foreign.id,
            "alice": alice.id,
            "bob": bob.id,
            "admin_a": admin_a.id,
            "carol": carol.id,
        }
        headers = {
            "alice": auth(token_for(alice)),
            "bob": auth(token_for(bob)),
            "admin_a": auth(token_for(admin_a)),
            "carol": auth(token_for(carol)),
            "admin_b": auth(token_for(admin_b)),
        }
        db.session.remove()
    return {"ids": ids, "headers": headers}
