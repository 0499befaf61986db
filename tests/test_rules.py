from __future__ import annotations

from datetime import date

import pytest

from medikeep.core.errors import ValidationError
from medikeep.domain.rules import (
    PRESCRIPTION_RULES,
    PROFILE_RULES,
    REMINDER_RULES,
    parse_iso_date,
    validate,
)


def _prescription(**overrides):
    data = {
        "medicationName": "Amoxicillin",
        "doctorName": "Dr. Khan",
        "patientName": "A. Ali",
        "date": "2024-01-10",
        "dosage": "500mg",
        "instructions": "twice daily",
    }
    data.update(overrides)
    return data


def test_prescription_defaults_side_effects_and_parses_date():
    values = validate(_prescription(), PRESCRIPTION_RULES)
    assert values["side_effects"] == "None reported"
    assert values["date"] == date(2024, 1, 10)
    assert values["medication_name"] == "Amoxicillin"


def test_prescription_reports_every_missing_field():
    with pytest.raises(ValidationError) as info:
        validate({"medicationName": "X", "doctorName": "  "}, PRESCRIPTION_RULES)
    fields = {err.field for err in info.value.errors}
    assert fields == {"doctorName", "patientName", "date", "dosage", "instructions"}


def test_rejects_non_iso_date():
    with pytest.raises(ValidationError) as info:
        validate(_prescription(date="10/01/2024"), PRESCRIPTION_RULES)
    assert info.value.errors[0].field == "date"


def test_parse_iso_date_accepts_timestamps():
    assert parse_iso_date("2024-01-10T08:30:00Z") == date(2024, 1, 10)
    assert parse_iso_date("2024-01-10T08:30:00+05:00") == date(2024, 1, 10)


def test_body_must_be_an_object():
    with pytest.raises(ValidationError) as info:
        validate(["not", "a", "dict"], REMINDER_RULES)
    assert info.value.errors[0].field == "body"


def test_reminder_time_format_and_blank_notes():
    values = validate(
        {"medication": "Metformin", "dosage": "1 tab", "time": "08:00", "date": "2024-02-01", "notes": ""},
        REMINDER_RULES,
    )
    assert values["notes"] is None
    with pytest.raises(ValidationError):
        validate({"medication": "M", "dosage": "1", "time": "8am", "date": "2024-02-01"}, REMINDER_RULES)


def test_profile_partial_only_returns_present_keys():
    values = validate({"age": "42", "city": "Lahore"}, PROFILE_RULES, partial=True)
    assert values == {"age": 42, "city": "Lahore"}


def test_profile_enum_and_range_checks():
    with pytest.raises(ValidationError) as info:
        validate(
            {"age": 130, "gender": "male", "bloodGroup": "C+", "height": -1, "email": "nope"},
            PROFILE_RULES,
            partial=True,
        )
    fields = {err.field for err in info.value.errors}
    assert fields == {"age", "gender", "bloodGroup", "height", "email"}


def test_profile_name_cannot_be_emptied_but_phone_can():
    with pytest.raises(ValidationError):
        validate({"name": ""}, PROFILE_RULES, partial=True)
    assert validate({"phone": ""}, PROFILE_RULES, partial=True) == {"phone": ""}
    assert validate({"gender": None}, PROFILE_RULES, partial=True) == {"gender": None}


def test_booleans_are_not_numbers():
    with pytest.raises(ValidationError):
        validate({"age": True}, PROFILE_RULES, partial=True)


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "Infinity", "1e400", float("inf"), float("nan")])
def test_non_finite_numbers_are_rejected(value):
    with pytest.raises(ValidationError) as info:
        validate({"height": value, "weight": value}, PROFILE_RULES, partial=True)
    assert {err.field for err in info.value.errors} == {"height", "weight"}


def test_integer_overflow_is_a_validation_error():
    with pytest.raises(ValidationError) as info:
        validate({"age": 10**400}, PROFILE_RULES, partial=True)
    assert info.value.errors[0].field == "age"


def test_integers_accept_whole_floats_only():
    assert validate({"age": 42.0}, PROFILE_RULES, partial=True) == {"age": 42}
    with pytest.raises(ValidationError):
        validate({"age": "42.5"}, PROFILE_RULES, partial=True)


def test_profile_text_lengths_match_columns():
    with pytest.raises(ValidationError) as info:
        validate(
            {"cnic": "x" * 33, "city": "c" * 256, "emergencyContactName": "n" * 256},
            PROFILE_RULES,
            partial=True,
        )
    assert {err.field for err in info.value.errors} == {"cnic", "city", "emergencyContactName"}
    assert validate({"cnic": "x" * 32, "address": "a" * 5000}, PROFILE_RULES, partial=True)["cnic"] == "x" * 32


def test_overlong_email_is_rejected():
    email = "a" * 250 + "@example.com"
    with pytest.raises(ValidationError):
        validate({"email": email}, PROFILE_RULES, partial=True)
