"""Plain record types returned by the repository and services."""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Optional

from medikeep.core.config import DEFAULT_PROFILE_IMAGE


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class BloodGroup(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    TAKEN = "taken"
    # Only set by an external scheduler; no service operation produces it.
    MISSED = "missed"


DEFAULT_SIDE_EFFECTS = "None reported"


@dataclass(frozen=True)
class Owner:
    """Authenticated identity every record is scoped to."""

    id: str
    email: str = ""
    name: str = ""


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class _Record:
    def to_dict(self) -> dict:
        return {_camel(f.name): _jsonable(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class PrescriptionRecord(_Record):
    id: str
    owner_id: str
    medication_name: str
    doctor_name: str
    patient_name: str
    date: date
    dosage: str
    instructions: str
    side_effects: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReminderRecord(_Record):
    id: str
    owner_id: str
    medication: str
    dosage: str
    time: str
    date: date
    notes: Optional[str]
    status: str
    taken_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class ProfileRecord(_Record):
    id: str
    owner_id: str
    name: str
    email: str
    phone: str
    profile_image: str
    age: Optional[int]
    gender: Optional[str]
    blood_group: Optional[str]
    height: Optional[float]
    weight: Optional[float]
    address: str
    city: str
    province: str
    cnic: str
    medical_conditions: str
    current_medications: str
    past_surgeries: str
    food_allergies: str
    drug_allergies: str
    other_allergies: str
    emergency_contact_name: str
    emergency_contact_relationship: str
    emergency_contact_phone: str
    created_at: datetime
    updated_at: datetime

    @property
    def has_custom_image(self) -> bool:
        return bool(self.profile_image) and self.profile_image != DEFAULT_PROFILE_IMAGE


@dataclass(frozen=True)
class Asset:
    """A stored binary file, addressed by its public path."""

    path: str
    content_type: str
    size: int
