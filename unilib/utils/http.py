from flask import jsonify, request

from unilib.errors import InvalidInput


def json_error(message, code=400, errors=None):
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), code


def error_response(e: ValueError):
    """LibraryError carries its own status; a plain ValueError is a 400."""
    return json_error(
        str(e),
        getattr(e, "status_code", 400),
        getattr(e, "errors", None),
    )


def json_body() -> dict:
    # missing or unparsable body reads as {}; a list/number/string is rejected
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("JSON object body required")
    return data
