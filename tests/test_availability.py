from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from unilib.errors import Cancelled
from unilib.services.availability_service import (
    AvailabilityService,
    SORT_TITLE,
    active_loan_count,
    available_copies,
    build_predictions,
    clamp_page,
    describe,
    matches_genres,
    next_available_in_days,
    parse_genres,
    soonest_due_date,
)
from unilib.utils.cancellation import CancelToken

from conftest import NOW, tenant_of


def _loan(book_id, due, returned=None):
    return SimpleNamespace(book_id=book_id, due_date=due, return_date=returned)


def _book(book_id, title, total=1, isbn="isbn"):
    return SimpleNamespace(id=book_id, title=title, isbn=isbn, total_copies=total)


# ---------------------------------------------------------------- pure parts
def test_available_copies_is_total_minus_active():
    assert available_copies(3, 1) == 2
    assert available_copies(3, 3) == 0


def test_available_copies_never_negative():
    assert available_copies(1, 4) == 0
    assert available_copies(0, 0) == 0


def test_active_loan_count_ignores_returned():
    loans = [
        _loan(1, NOW),
        _loan(1, NOW, returned=NOW),
        _loan(1, NOW + timedelta(days=1)),
    ]
    assert active_loan_count(loans) == 2


def test_soonest_due_date_only_active():
    loans = [
        _loan(1, NOW + timedelta(days=1), returned=NOW),
        _loan(1, NOW + timedelta(days=4)),
        _loan(1, NOW + timedelta(days=2)),
    ]
    assert soonest_due_date(loans) == NOW + timedelta(days=2)
    assert soonest_due_date([]) is None


def test_next_available_zero_when_copies_left():
    assert next_available_in_days(1, NOW + timedelta(days=5), NOW) == 0


def test_next_available_rounds_up_partial_days():
    assert next_available_in_days(0, NOW + timedelta(days=2, hours=3), NOW) == 3
    assert next_available_in_days(0, NOW + timedelta(days=2), NOW) == 2


def test_next_available_overdue_is_zero():
    assert next_available_in_days(0, NOW - timedelta(days=3), NOW) == 0


def test_next_available_unknown_without_active_loans():
    assert next_available_in_days(0, None, NOW) is None


def test_describe_matches_regardless_of_call_order():
    book = _book(7, "X", total=2)
    loans = [_loan(7, NOW + timedelta(days=3)), _loan(7, NOW + timedelta(days=1)), _loan(8, NOW)]
    first = describe(book, loans, NOW)
    second = describe(book, list(reversed(loans)), NOW)
    assert first == second
    assert first.available_copies == 0
    assert first.active_loans == 2
    assert first.soonest_due_date == NOW + timedelta(days=1)
    assert first.next_available_in_days == 1


def test_describe_without_loans():
    a = describe(_book(1, "X", total=4), [], NOW)
    assert a.available_copies == 4
    assert a.next_available_in_days == 0
    assert a.soonest_due_date is None


def test_predictions_ordered_by_min_due_date():
    a = _book(1, "A")
    b = _book(2, "B")
    rows = [
        (_loan(2, NOW + timedelta(days=5)), b),
        (_loan(1, NOW + timedelta(days=9)), a),
        (_loan(1, NOW + timedelta(days=2)), a),
    ]
    result = build_predictions(rows)
    assert [p.book_id for p in result] == [1, 2]
    assert result[0].min_due_date == NOW + timedelta(days=2)


def test_predictions_skip_returned_loans():
    a = _book(1, "A")
    rows = [(_loan(1, NOW + timedelta(days=1), returned=NOW), a)]
    assert build_predictions(rows) == []


@pytest.mark.parametrize("raw,expected", [
    ("sci-fi,classic", ["sci-fi", "classic"]),
    ("a; b | c", ["a", "b", "c"]),
    (["x", "", " y "], ["x", "y"]),
    (None, []),
    ("", []),
])
def test_parse_genres(raw, expected):
    assert parse_genres(raw) == expected


def test_matches_genres_intersection():
    assert matches_genres(["Sci-Fi", "classic"], ["sci-fi"])
    assert not matches_genres(["fantasy"], ["sci-fi"])
    assert matches_genres([], [])


def test_clamp_page_limits():
    assert clamp_page(None, None) == (1, 12)
    assert clamp_page("0", "500") == (1, 100)
    assert clamp_page("abc", "-3") == (1, 12)
    assert clamp_page("3", "5") == (3, 5)


# -------------------------------------------------------------- tenant reads
def test_list_books_derives_fields(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    bob = seed.user(uni, "bob@uni-a.edu")
    book = seed.book(uni, "Dune", "111", total_copies=2)
    seed.loan(book, alice, NOW + timedelta(days=3))
    seed.loan(book, bob, NOW + timedelta(days=1))
    seed.loan(book, bob, NOW - timedelta(days=10), return_date=NOW - timedelta(days=9))

    page = AvailabilityService.list_books(tenant_of(alice), now=NOW)
    (b, a), = page.items
    assert b.id == book.id
    assert a.available_copies == 0
    assert a.soonest_due_date == NOW + timedelta(days=1)
    assert a.next_available_in_days == 1


@pytest.mark.parametrize("reverse", [False, True])
def test_listing_does_not_depend_on_loan_insertion_order(ctx, seed, reverse):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    book = seed.book(uni, "Dune", "111", total_copies=3)
    other = seed.book(uni, "Emma", "222", total_copies=1)
    dues = [NOW + timedelta(days=4), NOW + timedelta(hours=30), NOW + timedelta(days=9)]
    for due in (reversed(dues) if reverse else dues):
        seed.loan(book, alice, due)
    seed.loan(other, alice, NOW + timedelta(hours=1))

    ctx_ = tenant_of(alice)
    (listed, a), _ = AvailabilityService.list_books(ctx_, now=NOW).items
    _, detail = AvailabilityService.get_book(ctx_, book.id, now=NOW)

    assert listed.id == book.id
    assert a == detail
    assert a.active_loans == 3
    assert a.available_copies == 0
    assert a.soonest_due_date == NOW + timedelta(hours=30)
    assert a.next_available_in_days == 2


def test_list_books_search_is_literal_and_case_insensitive(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    seed.book(uni, "C++ Primer", "1")
    seed.book(uni, "CXX Primer", "2")
    seed.book(uni, "100% Python", "3")
    seed.book(uni, "1000 Python tips", "4")

    ctx_ = tenant_of(alice)
    titles = [b.title for b, _ in AvailabilityService.list_books(ctx_, query="c++").items]
    assert titles == ["C++ Primer"]

    titles = [b.title for b, _ in AvailabilityService.list_books(ctx_, query="100%").items]
    assert titles == ["100% Python"]


def test_list_books_genre_filter_and_sorts(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    seed.book(uni, "Alpha", "1", genres=["sci-fi"], rating=3.0, borrow_count=9)
    seed.book(uni, "Beta", "2", genres=["fantasy"], rating=4.5, borrow_count=1)
    seed.book(uni, "Gamma", "3", genres=["sci-fi", "fantasy"], rating=None, borrow_count=5)

    ctx_ = tenant_of(alice)
    by_title = [b.title for b, _ in AvailabilityService.list_books(ctx_).items]
    assert by_title == ["Alpha", "Beta", "Gamma"]
    assert [b.title for b, _ in AvailabilityService.list_books(ctx_, sort=SORT_TITLE).items] == by_title

    by_rating = [b.title for b, _ in AvailabilityService.list_books(ctx_, sort="rating").items]
    assert by_rating == ["Beta", "Alpha", "Gamma"]

    by_popularity = [b.title for b, _ in AvailabilityService.list_books(ctx_, sort="popularity").items]
    assert by_popularity == ["Alpha", "Gamma", "Beta"]

    sci_fi = [b.title for b, _ in AvailabilityService.list_books(ctx_, genres="sci-fi").items]
    assert sci_fi == ["Alpha", "Gamma"]


def test_list_books_pagination(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    for i in range(5):
        seed.book(uni, f"Book {i}", str(i))

    page = AvailabilityService.list_books(tenant_of(alice), page=2, limit=2)
    assert [b.title for b, _ in page.items] == ["Book 2", "Book 3"]
    assert page.total == 5
    assert page.total_pages == 3


def test_only_available_keeps_partially_borrowed(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    two = seed.book(uni, "Two copies", "1", total_copies=2)
    one = seed.book(uni, "One copy", "2", total_copies=1)
    seed.loan(two, alice, NOW + timedelta(days=2))
    seed.loan(one, alice, NOW + timedelta(days=2))

    page = AvailabilityService.list_books(tenant_of(alice), only_available=True, now=NOW)
    assert [b.title for b, _ in page.items] == ["Two copies"]


def test_available_soon_excludes_partially_available(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    late = seed.book(uni, "Back later", "1", total_copies=1)
    early = seed.book(uni, "Back soon", "2", total_copies=1)
    partial = seed.book(uni, "Partial", "3", total_copies=2)
    seed.book(uni, "Idle", "4", total_copies=0)
    seed.loan(late, alice, NOW + timedelta(days=5))
    seed.loan(early, alice, NOW + timedelta(days=2))
    seed.loan(partial, alice, NOW + timedelta(days=1))

    soon = AvailabilityService.available_soon(tenant_of(alice), now=NOW)
    assert [b.title for b, _ in soon] == ["Back soon", "Back later"]


def test_predictions_from_ledger(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    a = seed.book(uni, "A", "1", total_copies=3)
    b = seed.book(uni, "B", "2", total_copies=3)
    seed.book(uni, "Never borrowed", "3")
    seed.loan(b, alice, NOW + timedelta(days=5))
    seed.loan(a, alice, NOW + timedelta(days=2))
    seed.loan(a, alice, NOW + timedelta(days=8))

    result = AvailabilityService.predictions(tenant_of(alice))
    assert [p.title for p in result] == ["A", "B"]
    assert result[0].min_due_date == NOW + timedelta(days=2)


def test_list_genres_distinct(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    seed.book(uni, "A", "1", genres=["sci-fi", "Classic"])
    seed.book(uni, "B", "2", genres=["classic", "art"])
    assert AvailabilityService.list_genres(tenant_of(alice)) == ["art", "Classic", "sci-fi"]


def test_cancelled_lookup_raises(ctx, seed):
    uni = seed.university()
    alice = seed.user(uni, "alice@uni-a.edu")
    seed.book(uni, "A", "1")

    token = CancelToken()
    token.cancel()
    with pytest.raises(Cancelled):
        AvailabilityService.list_books(tenant_of(alice), cancel=token)
