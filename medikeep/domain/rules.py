"""Field rule tables and the validator that applies them.

Each resource declares a tuple of Rule entries keyed by the external
(camelCase) field name. ``validate`` checks raw input against a table and
returns normalized values keyed by model attribute, or raises ValidationError
listing every failing field. Keys not in the table are ignored, so callers can
never set owner ids, timestamps or the profile image through these paths.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from medikeep.core.errors import FieldError, ValidationError
from medikeep.domain.records import DEFAULT_SIDE_EFFECTS, BloodGroup, Gender

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?[0-9][0-9 ()\-]{6,19}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SHORT_TEXT = 255
CNIC_TEXT = 32


@dataclass(frozen=True)
class Rule:
    field: str
    attr: str
    kind: str = "text"
    required: bool = False
    choices: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None
    max_length: int | None = None
    default: Any = None
    # Present-but-empty values are accepted and stored as ``default``.
    blank_ok: bool = False


def _text(field: str, attr: str, **kw) -> Rule:
    return Rule(field, attr, "text", **kw)


PRESCRIPTION_RULES: tuple[Rule, ...] = (
    _text("medicationName", "medication_name", required=True, max_length=SHORT_TEXT),
    _text("doctorName", "doctor_name", required=True, max_length=SHORT_TEXT),
    _text("patientName", "patient_name", required=True, max_length=SHORT_TEXT),
    Rule("date", "date", "date", required=True),
    _text("dosage", "dosage", required=True, max_length=SHORT_TEXT),
    _text("instructions", "instructions", required=True),
    _text("sideEffects", "side_effects", default=DEFAULT_SIDE_EFFECTS, blank_ok=True),
)

REMINDER_RULES: tuple[Rule, ...] = (
    _text("medication", "medication", required=True, max_length=SHORT_TEXT),
    _text("dosage", "dosage", required=True, max_length=SHORT_TEXT),
    Rule("time", "time", "time", required=True),
    Rule("date", "date", "date", required=True),
    _text("notes", "notes", blank_ok=True),
)

SHARE_RULES: tuple[Rule, ...] = (
    Rule("recipientEmail", "recipient_email", "email", required=True, max_length=SHORT_TEXT),
)

# (field, attr, max_length); None means an unbounded Text column.
_FREE_TEXT_PROFILE_FIELDS = (
    ("address", "address", None),
    ("city", "city", SHORT_TEXT),
    ("province", "province", SHORT_TEXT),
    ("cnic", "cnic", CNIC_TEXT),
    ("medicalConditions", "medical_conditions", None),
    ("currentMedications", "current_medications", None),
    ("pastSurgeries", "past_surgeries", None),
    ("foodAllergies", "food_allergies", None),
    ("drugAllergies", "drug_allergies", None),
    ("otherAllergies", "other_allergies", None),
    ("emergencyContactName", "emergency_contact_name", SHORT_TEXT),
    ("emergencyContactRelationship", "emergency_contact_relationship", SHORT_TEXT),
)

# Applied with partial=True: absent keys are left untouched.
PROFILE_RULES: tuple[Rule, ...] = (
    _text("name", "name", required=True, max_length=SHORT_TEXT),
    Rule("email", "email", "email", required=True, max_length=SHORT_TEXT),
    Rule("phone", "phone", "phone", default="", blank_ok=True),
    Rule("age", "age", "int", minimum=0, maximum=120, blank_ok=True),
    Rule("gender", "gender", "choice", choices=tuple(g.value for g in Gender), blank_ok=True),
    Rule("bloodGroup", "blood_group", "choice", choices=tuple(b.value for b in BloodGroup), blank_ok=True),
    Rule("height", "height", "float", minimum=0, blank_ok=True),
    Rule("weight", "weight", "float", minimum=0, blank_ok=True),
    *(
        _text(field, attr, default="", blank_ok=True, max_length=limit)
        for field, attr, limit in _FREE_TEXT_PROFILE_FIELDS
    ),
    Rule("emergencyContactPhone", "emergency_contact_phone", "phone", default="", blank_ok=True),
)


def parse_iso_date(value: Any) -> date:
    """Accept ``YYYY-MM-DD`` or a full ISO-8601 timestamp and return the date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("not a string")
    raw = value.strip()
    if len(raw) == 10:
        return date.fromisoformat(raw)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw).date()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number(value: Any, integer: bool):
    if isinstance(value, bool):
        raise ValueError("booleans are not numbers")
    number = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    # inf and nan compare false against any range bound and cannot be serialized.
    if not math.isfinite(number):
        raise ValueError("not a finite number")
    if integer:
        if not number.is_integer():
            raise ValueError("not an integer")
        return int(value) if isinstance(value, int) else int(number)
    return number


def _check(rule: Rule, value: Any) -> Any:
    """Return the normalized value or raise ValueError with a user-facing message."""
    kind = rule.kind
    if kind == "text":
        if not isinstance(value, str):
            raise ValueError(f"{rule.field} must be a string")
        cleaned = value.strip()
        if rule.max_length and len(cleaned) > rule.max_length:
            raise ValueError(f"{rule.field} must be at most {rule.max_length} characters")
        return cleaned
    if kind == "date":
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValueError(f"{rule.field} must be an ISO-8601 date") from None
    if kind == "time":
        if not isinstance(value, str) or not TIME_RE.fullmatch(value.strip()):
            raise ValueError(f"{rule.field} must be a time in HH:MM format")
        return value.strip()
    if kind == "email":
        if not isinstance(value, str) or not EMAIL_RE.fullmatch(value.strip()):
            raise ValueError("Valid email is required")
        if rule.max_length and len(value.strip()) > rule.max_length:
            raise ValueError(f"{rule.field} must be at most {rule.max_length} characters")
        return value.strip()
    if kind == "phone":
        if not isinstance(value, str) or not PHONE_RE.fullmatch(value.strip()):
            raise ValueError("Valid phone number is required")
        return value.strip()
    if kind in ("int", "float"):
        try:
            number = _number(value, integer=kind == "int")
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"Valid {rule.field} is required") from None
        if rule.minimum is not None and number < rule.minimum:
            raise ValueError(f"Valid {rule.field} is required")
        if rule.maximum is not None and number > rule.maximum:
            raise ValueError(f"Valid {rule.field} is required")
        return number
    if kind == "choice":
        if value not in rule.choices:
            raise ValueError(f"{rule.field} must be one of: {', '.join(rule.choices)}")
        return value
    raise RuntimeError(f"unknown rule kind {kind!r}")


def validate(data: Any, rules: tuple[Rule, ...], *, partial: bool = False) -> dict[str, Any]:
    """Validate ``data`` against ``rules``.

    Full mode (create / full-replace update): every required field must be
    present and non-empty; optional fields that are absent take their default.
    Partial mode (profile update): only keys present in ``data`` are checked
    and returned; ``required`` then means "cannot be emptied".
    """
    if not isinstance(data, Mapping):
        raise ValidationError.single("body", "Request body must be a JSON object")
    values: dict[str, Any] = {}
    errors: list[FieldError] = []
    for rule in rules:
        present = rule.field in data
        if partial and not present:
            continue
        raw = data.get(rule.field)
        if _is_blank(raw):
            if rule.required:
                errors.append(FieldError(rule.field, f"{rule.field} is required"))
            elif not present or rule.blank_ok:
                values[rule.attr] = rule.default
            else:
                errors.append(FieldError(rule.field, f"{rule.field} cannot be empty"))
            continue
        try:
            values[rule.attr] = _check(rule, raw)
        except ValueError as exc:
            errors.append(FieldError(rule.field, str(exc)))
    if errors:
        raise ValidationError(errors)
    return values
