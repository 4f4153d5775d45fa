from flask import Blueprint, request, jsonify, g

from unilib.services.availability_service import AvailabilityService
from unilib.utils.cancellation import search_registry
from unilib.utils.decorators import tenant_required
from unilib.utils.http import error_response, json_error
from unilib.utils.serializers import book_json, prediction_json

student_bp = Blueprint("student", __name__)


def _wants_page() -> bool:
    return "page" in request.args or "limit" in request.args


def _list_response(page):
    items = [book_json(b, a) for b, a in page.items]
    if not _wants_page():
        return jsonify(items)
    return jsonify({
        "items": items,
        "page": page.page,
        "limit": page.limit,
        "total": page.total,
        "totalPages": page.total_pages,
    })


def _list(query: str = "", only_available: bool = False, cancel=None):
    return AvailabilityService.list_books(
        g.tenant,
        query=query,
        genres=request.args.get("genres"),
        sort=request.args.get("sort"),
        page=request.args.get("page") if _wants_page() else None,
        limit=request.args.get("limit") if _wants_page() else None,
        only_available=only_available,
        cancel=cancel,
    )


@student_bp.get("/books/all")
@tenant_required
def books_all():
    return _list_response(_list())


@student_bp.get("/books/available")
@tenant_required
def books_available():
    return _list_response(_list(only_available=True))


@student_bp.get("/books/search")
@tenant_required
def books_search():
    q = (request.args.get("q") or "").strip()

    # a newer search from the same user cancels this one
    key = (g.tenant.university_id, g.tenant.user_id, "search")
    token = search_registry.begin(key)
    try:
        return _list_response(_list(query=q, cancel=token))
    except ValueError as e:
        return error_response(e)
    finally:
        search_registry.finish(key, token)


@student_bp.get("/books/soon")
@tenant_required
def books_soon():
    entries = AvailabilityService.available_soon(g.tenant)
    return jsonify([book_json(b, a) for b, a in entries])


@student_bp.get("/books/predictions")
@tenant_required
def books_predictions():
    return jsonify([prediction_json(p) for p in AvailabilityService.predictions(g.tenant)])


@student_bp.get("/books/<int:book_id>")
@tenant_required
def book_detail(book_id: int):
    found = AvailabilityService.get_book(g.tenant, book_id)
    if not found:
        return json_error("Book not found", 404)
    book, availability = found
    return jsonify(book_json(book, availability))


@student_bp.get("/genres")
@tenant_required
def genres():
    return jsonify(AvailabilityService.list_genres(g.tenant))
