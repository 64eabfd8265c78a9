from flask import request

from libris.errors import ValidationError


def json_body() -> dict:
    """The request's JSON object; ``{}`` when the body is missing or not JSON."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
