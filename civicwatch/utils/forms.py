"""WTForms plumbing for validating JSON request bodies."""
from typing import Any, Iterable, Optional

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import Field
from wtforms.validators import StopValidation

from civicwatch.utils.errors import ValidationError


def strip_value(value):
    return value.strip() if isinstance(value, str) else value


def json_formdata(payload: Any, fields: Optional[Iterable[str]] = None, list_fields: Iterable[str] = ()) -> MultiDict:
    """Flatten a JSON object into form data; ``null`` means "not provided".

    Only keys in ``fields`` are read when it is given. Objects are never
    accepted, and arrays only for ``list_fields``, whose items must be scalars.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    list_fields = set(list_fields)
    formdata = MultiDict()
    errors = {}
    for key, value in payload.items():
        if value is None or (fields is not None and key not in fields):
            continue
        if isinstance(value, dict):
            errors[key] = ["Must be a single value"]
            continue
        if isinstance(value, list):
            if key not in list_fields:
                errors[key] = ["Must be a single value"]
                continue
            if any(isinstance(item, (dict, list)) for item in value):
                errors[key] = ["Must be a list of strings"]
                continue
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is None:
                continue
            formdata.add(key, item if isinstance(item, str) else str(item))
    if errors:
        raise ValidationError("Invalid input", errors=errors)
    return formdata


def request_json() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


class StringListField(Field):
    """Collects every submitted value for a key, e.g. a JSON array of image URLs."""

    def _value(self):
        return ""

    def process_formdata(self, valuelist):
        self.data = [v.strip() for v in valuelist if v and v.strip()]


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, payload: dict):
        form = cls(formdata=None)
        list_fields = [field.name for field in form if isinstance(field, StringListField)]
        form.process(json_formdata(payload, [field.name for field in form], list_fields))
        return form

    def validated_data(self) -> dict:
        if not self.validate():
            raise ValidationError("Invalid input", errors=self.errors)
        return {name: field.data for name, field in self._fields.items()}


class IfProvided:
    """Skip the remaining validators when the key was absent from the body.

    Unlike ``Optional`` a provided-but-blank value keeps going, so a following
    ``DataRequired`` can reject it.
    """

    field_flags = {"optional": True}

    def __call__(self, form, field):
        if not field.raw_data:
            raise StopValidation()
