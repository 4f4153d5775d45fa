from flask import Blueprint, jsonify, g
from unilib.services.settings_service import SettingsService
from unilib.utils.decorators import tenant_required
from unilib.utils.http import error_response
from unilib.utils.serializers import settings_json

university_bp = Blueprint("university", __name__)


@university_bp.get("/settings")
@tenant_required
def settings():
    try:
        uni = SettingsService.get_university(g.tenant)
        return jsonify(settings_json(uni))
    except ValueError as e:
        return error_response(e)
