from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import DBAPIError, OperationalError

from unilib.db_objects import OVERBOOKING_GUARD_MESSAGE
from unilib.errors import Conflict, Forbidden, InvalidInput, NotFound
from unilib.extensions import db
from unilib.models.loan import Loan
from unilib.repositories.book_repo import BookRepo
from unilib.repositories.loan_repo import LoanRepo
from unilib.repositories.university_repo import UniversityRepo
from unilib.services.availability_service import DAY, available_copies
from unilib.services.notification_service import NotificationService
from unilib.tasks.side_effects import run_side_effect
from unilib.tenant import TenantContext
from unilib.utils import cancellation
from unilib.utils.clock import utcnow
from unilib.utils.locks import book_lock

LOAN_MAX_DAYS = 28
DEFAULT_LOAN_DAYS = 7


class _StaleBookVersion(Exception):
    """Another checkout for the same book committed between our read and write."""


def parse_id(value, field: str) -> int:
    if value is None or value == "":
        raise InvalidInput(f"{field} required")
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid {field}")
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {field}")
    if parsed < 1:
        raise InvalidInput(f"Invalid {field}")
    return parsed


def resolve_loan_days(requested, default_days, max_days: int = LOAN_MAX_DAYS) -> int:
    """
    A finite positive request is rounded (half up) and clamped to [1, max_days].
    Anything else (missing, 0, negative, "abc") falls back to the university
    default, itself floored at 1.
    """
    try:
        base = max(1, int(default_days or DEFAULT_LOAN_DAYS))
    except (TypeError, ValueError):
        base = DEFAULT_LOAN_DAYS

    if requested is None or isinstance(requested, bool):
        return base
    try:
        value = float(requested)
    except (TypeError, ValueError):
        return base
    if not math.isfinite(value) or value <= 0:
        return base
    return max(1, min(int(max_days), math.floor(value + 0.5)))


def compute_fine(due_date: datetime, return_date: datetime, fine_per_day) -> Decimal:
    if return_date is None or due_date is None or return_date <= due_date:
        return Decimal("0.00")
    days_late = math.ceil((return_date - due_date) / DAY)
    per_day = max(Decimal("0"), Decimal(str(fine_per_day or 0)))
    return (per_day * days_late).quantize(Decimal("0.01"))


class LoanService:
    # ---------------------------------------------------------------- checkout
    @staticmethod
    def _attempt_checkout(ctx: TenantContext, book_id: int, days: int, now: datetime, cancel) -> Loan:
        books = BookRepo(ctx)
        loans = LoanRepo(ctx)

        book = books.get_fresh(book_id)
        if not book:
            raise NotFound("Book not found")

        # version first, then count: the count is never older than the version
        seen_version = book.loan_version or 0
        active = loans.count_active_for_book(book_id)
        if available_copies(book.total_copies, active) <= 0:
            raise Conflict("No copies available")

        cancellation.check(cancel)

        if not books.claim_version(book_id, seen_version):
            raise _StaleBookVersion()

        loan = loans.add(Loan(
            book_id=book_id,
            student_id=ctx.user_id,
            university_id=ctx.university_id,
            due_date=now + timedelta(days=days),
            created_at=now,
        ))
        db.session.flush()

        # last point where a cancelled request can still back out
        cancellation.check(cancel)
        db.session.commit()
        return loan

    @staticmethod
    def checkout(
        ctx: TenantContext,
        book_id,
        duration_days=None,
        now: datetime | None = None,
        cancel=None,
    ) -> Loan:
        book_id = parse_id(book_id, "bookItemId")

        book = BookRepo(ctx).get(book_id)
        if not book:
            raise NotFound("Book not found")

        uni = UniversityRepo.get(ctx.university_id)
        days = resolve_loan_days(
            duration_days,
            uni.loan_days_default if uni else DEFAULT_LOAN_DAYS,
            current_app.config.get("LOAN_MAX_DAYS", LOAN_MAX_DAYS),
        )
        now = now or utcnow()
        max_attempts = max(1, int(current_app.config.get("CHECKOUT_MAX_RETRIES", 5)))

        loan = None
        with book_lock(ctx.university_id, book_id):
            for attempt in range(1, max_attempts + 1):
                try:
                    loan = LoanService._attempt_checkout(ctx, book_id, days, now, cancel)
                    break
                except _StaleBookVersion:
                    db.session.rollback()
                    current_app.logger.warning(
                        f"[checkout] book={book_id} changed concurrently, retry {attempt}/{max_attempts}"
                    )
                except OperationalError as e:
                    db.session.rollback()
                    current_app.logger.warning(
                        f"[checkout] book={book_id} transient storage error, retry {attempt}/{max_attempts}: {e}"
                    )
                except DBAPIError as e:
                    db.session.rollback()
                    if OVERBOOKING_GUARD_MESSAGE in str(e.orig):
                        raise Conflict("No copies available")
                    raise
                except Exception:
                    db.session.rollback()
                    raise

        if loan is None:
            raise Conflict("Checkout conflict, please retry")

        current_app.logger.info(
            f"[checkout] loan={loan.id} book={book_id} user={ctx.user_id} days={days}"
        )

        run_side_effect("borrow_count", BookRepo(ctx).increment_borrow_count, book_id)
        run_side_effect("borrow_notification", NotificationService.record_borrow, ctx, book)
        return loan

    # ------------------------------------------------------------------ return
    @staticmethod
    def return_loan(ctx: TenantContext, loan_id, now: datetime | None = None):
        """
        Returns (loan, fine). The fine is quoted only, nothing is billed.
        """
        loan_id = parse_id(loan_id, "loanId")
        loans = LoanRepo(ctx)

        loan = loans.get(loan_id)
        if not loan:
            raise NotFound("Loan not found")

        # scoped lookup already guarantees the admin is from the same university
        if loan.student_id != ctx.user_id and not ctx.is_admin:
            raise Forbidden("Forbidden")

        if not loan.is_active:
            raise Conflict("Already returned")

        when = now or utcnow()
        try:
            returned = loans.mark_returned(loan.id, when)
            if not returned:
                raise Conflict("Already returned")
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        uni = UniversityRepo.get(ctx.university_id)
        fine = compute_fine(loan.due_date, when, uni.fine_per_day if uni else 0)

        current_app.logger.info(
            f"[return] loan={loan.id} book={loan.book_id} user={ctx.user_id} fine={fine}"
        )

        run_side_effect("return_notification", NotificationService.record_return, ctx, loan.book)
        return loan, fine

    # -------------------------------------------------------------------- read
    @staticmethod
    def list_my_loans(ctx: TenantContext):
        return LoanRepo(ctx).list_by_student(ctx.user_id)
