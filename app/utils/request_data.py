"""Helpers for reading JSON request bodies."""
from typing import Any, Dict, Optional

from flask import request
from werkzeug.datastructures import MultiDict

from app.exceptions import ValidationError


def json_payload() -> Dict[str, Any]:
    """Request body as a dict (JSON or classic form post)."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise ValidationError('Ungültige Anfrage.')
        return payload
    return request.form.to_dict()


def int_field(payload: Dict[str, Any], name: str, default: Optional[int] = None) -> int:
    """Read an integer field or raise ValidationError with a field message."""
    value = payload.get(name, default)
    if value is None or value == '':
        raise ValidationError(errors={name: ['Pflichtfeld']})
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(errors={name: ['Keine gültige Zahl']})
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(errors={name: ['Keine gültige Zahl']})


def _form_value(value):
    if value is None:
        return ''
    if isinstance(value, bool):
        return value
    return str(value)


def form_from_json(form_cls, payload: Dict[str, Any]):
    """
    Bind a Flask-WTF form to a JSON payload.

    null becomes an empty string so Optional() fields validate as empty.
    The form's own CSRF field is off; CSRFProtect already checks the request.
    """
    formdata = MultiDict({key: _form_value(value) for key, value in payload.items()})
    return form_cls(formdata=formdata, meta={'csrf': False})


def present_fields(form, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Form data restricted to the keys the client actually sent."""
    return {name: value for name, value in form.data.items() if name in payload}
