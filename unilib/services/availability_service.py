"""
Availability engine.

Everything here is derived from the current loan rows on every call. Nothing
is cached and nothing is written back, so a listing can never disagree with
what checkout sees.

The module-level functions are pure and work on plain values; the
``AvailabilityService`` methods load the tenant's rows and feed them through.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from unilib.repositories.book_repo import BookRepo
from unilib.repositories.loan_repo import LoanRepo
from unilib.tenant import TenantContext
from unilib.utils import cancellation
from unilib.utils.clock import utcnow

DAY = timedelta(days=1)

SORT_TITLE = "title"
SORT_RATING = "rating"
SORT_POPULARITY = "popularity"


@dataclass(frozen=True)
class BookAvailability:
    available_copies: int
    active_loans: int
    soonest_due_date: datetime | None
    next_available_in_days: int | None


@dataclass(frozen=True)
class Prediction:
    book_id: int
    title: str
    isbn: str
    min_due_date: datetime


@dataclass
class Page:
    items: list
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


# --------------------------------------------------------------------------
# pure helpers
# --------------------------------------------------------------------------
def active_loan_count(loans) -> int:
    return sum(1 for loan in loans if loan.return_date is None)


def available_copies(total_copies, active_count: int) -> int:
    # clamp: an admin may have lowered total_copies below what is out
    return max(0, int(total_copies or 0) - int(active_count or 0))


def soonest_due_date(loans) -> datetime | None:
    dues = [loan.due_date for loan in loans if loan.return_date is None and loan.due_date is not None]
    return min(dues) if dues else None


def next_available_in_days(available: int, soonest_due: datetime | None, now: datetime) -> int | None:
    if available > 0:
        return 0
    if soonest_due is None:
        # unavailable with nothing out: unknown
        return None
    return max(0, math.ceil((soonest_due - now) / DAY))


def describe(book, loans, now: datetime) -> BookAvailability:
    """
    loans may hold rows of other books; only this book's active ones count.
    The result does not depend on their order.
    """
    own = [loan for loan in (loans or ()) if loan.book_id == book.id]
    active = active_loan_count(own)
    soonest = soonest_due_date(own)
    available = available_copies(book.total_copies, active)
    return BookAvailability(
        available_copies=available,
        active_loans=int(active),
        soonest_due_date=soonest,
        next_available_in_days=next_available_in_days(available, soonest, now),
    )


def build_predictions(rows) -> list[Prediction]:
    """
    rows: (loan, book) pairs. One entry per book with an active loan,
    soonest minimum due date first.
    """
    best: dict[int, Prediction] = {}
    for loan, book in rows:
        if loan.return_date is not None or loan.due_date is None:
            continue
        current = best.get(book.id)
        if current is None or loan.due_date < current.min_due_date:
            best[book.id] = Prediction(
                book_id=book.id,
                title=book.title,
                isbn=book.isbn,
                min_due_date=loan.due_date,
            )
    return sorted(best.values(), key=lambda p: (p.min_due_date, p.title.lower(), p.book_id))


def parse_genres(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        parts = [str(v) for v in value if v]
    else:
        parts = re.split(r"[;|,]", str(value))
    return [p.strip() for p in parts if p and p.strip()]


def matches_genres(book_genres, requested) -> bool:
    if not requested:
        return True
    wanted = {g.lower() for g in requested}
    return any(str(g).lower() in wanted for g in (book_genres or []))


def sort_entries(entries, sort: str | None = SORT_TITLE):
    """entries: (book, BookAvailability) pairs."""
    def by_title(entry):
        book = entry[0]
        return ((book.title or "").lower(), book.id)

    ordered = sorted(entries, key=by_title)
    if sort == SORT_RATING:
        # unrated books go last
        ordered.sort(key=lambda e: (e[0].rating is None, -(e[0].rating or 0.0)))
    elif sort == SORT_POPULARITY:
        ordered.sort(key=lambda e: -(e[0].borrow_count or 0))
    return ordered


def clamp_page(page, limit, default_limit: int = 12, max_limit: int = 100) -> tuple[int, int]:
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit) if limit is not None else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    if limit < 1:
        limit = default_limit
    return max(1, page), min(max_limit, limit)


def paginate(items: list, page: int, limit: int) -> Page:
    start = (page - 1) * limit
    return Page(items=items[start:start + limit], page=page, limit=limit, total=len(items))


# --------------------------------------------------------------------------
# tenant-scoped reads
# --------------------------------------------------------------------------
class AvailabilityService:
    @staticmethod
    def _describe_all(ctx: TenantContext, books, now: datetime):
        by_book = {}
        for loan in LoanRepo(ctx).list_active(b.id for b in books):
            by_book.setdefault(loan.book_id, []).append(loan)
        return [(b, describe(b, by_book.get(b.id), now)) for b in books]

    @staticmethod
    def list_books(
        ctx: TenantContext,
        query: str = "",
        genres=None,
        sort: str | None = None,
        page=None,
        limit=None,
        only_available: bool = False,
        now: datetime | None = None,
        cancel=None,
    ) -> Page:
        now = now or utcnow()
        requested = parse_genres(genres)

        books = BookRepo(ctx).search(query)
        cancellation.check(cancel)

        books = [b for b in books if matches_genres(b.genres, requested)]
        entries = AvailabilityService._describe_all(ctx, books, now)
        if only_available:
            entries = [e for e in entries if e[1].available_copies > 0]
        cancellation.check(cancel)

        entries = sort_entries(entries, sort)

        if page is None and limit is None:
            return Page(items=entries, page=1, limit=len(entries), total=len(entries))

        page, limit = clamp_page(
            page,
            limit,
            default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 12),
            max_limit=current_app.config.get("MAX_PAGE_SIZE", 100),
        )
        return paginate(entries, page, limit)

    @staticmethod
    def available_soon(ctx: TenantContext, now: datetime | None = None):
        """Currently unavailable books, the one expected back first on top."""
        now = now or utcnow()
        entries = AvailabilityService._describe_all(ctx, BookRepo(ctx).list_all(), now)
        soon = [
            e for e in entries
            if e[1].available_copies == 0 and e[1].soonest_due_date is not None
        ]
        soon.sort(key=lambda e: (e[1].soonest_due_date, (e[0].title or "").lower(), e[0].id))
        return soon

    @staticmethod
    def get_book(ctx: TenantContext, book_id: int, now: datetime | None = None):
        book = BookRepo(ctx).get(book_id)
        if not book:
            return None
        loans = LoanRepo(ctx).list_active([book.id])
        return book, describe(book, loans, now or utcnow())

    @staticmethod
    def predictions(ctx: TenantContext) -> list[Prediction]:
        return build_predictions(LoanRepo(ctx).list_active_with_books())

    @staticmethod
    def list_genres(ctx: TenantContext) -> list[str]:
        seen = {}
        for book in BookRepo(ctx).list_all():
            for g in parse_genres(book.genres):
                seen.setdefault(g.lower(), g)
        return sorted(seen.values(), key=str.lower)
