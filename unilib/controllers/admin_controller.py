from flask import Blueprint, request, jsonify, g, current_app

from unilib.services.availability_service import AvailabilityService
from unilib.services.notification_service import NotificationService
from unilib.services.settings_service import SettingsService
from unilib.tenant import ADMIN
from unilib.utils.decorators import role_required, tenant_required
from unilib.utils.http import error_response, json_body
from unilib.utils.serializers import book_json, notification_json, settings_json

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/books")
@role_required(ADMIN)
@tenant_required
def books():
    page = AvailabilityService.list_books(g.tenant)
    return jsonify([book_json(b, a) for b, a in page.items])


@admin_bp.get("/notifications")
@role_required(ADMIN)
@tenant_required
def notifications():
    rows = NotificationService.list_recent(
        g.tenant,
        request.args.get("limit"),
        default_limit=current_app.config.get("NOTIFICATION_LIMIT_DEFAULT", 20),
    )
    return jsonify([notification_json(n) for n in rows])


@admin_bp.patch("/university/settings")
@role_required(ADMIN)
@tenant_required
def update_settings():
    try:
        uni = SettingsService.update_settings(g.tenant, json_body())
        return jsonify(settings_json(uni))
    except ValueError as e:
        return error_response(e)
