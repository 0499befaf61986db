"""SQLAlchemy models for users, sessions and the three owner-scoped records.

Timestamps have no onupdate hooks: services pass the mutation time explicitly.
"""
from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sessions = relationship("UserSession", back_populates="user", cascade="all,delete-orphan")


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="sessions")


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    medication_name = Column(String(255), nullable=False)
    doctor_name = Column(String(255), nullable=False)
    patient_name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    dosage = Column(String(255), nullable=False)
    instructions = Column(Text, nullable=False)
    side_effects = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_prescriptions_owner_date", "owner_id", "date"),
        Index("ix_prescriptions_owner_medication", "owner_id", "medication_name"),
    )


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    medication = Column(String(255), nullable=False)
    dosage = Column(String(255), nullable=False)
    time = Column(String(5), nullable=False)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="pending")
    taken_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_reminders_owner_date", "owner_id", "date", "time"),
        Index("ix_reminders_owner_status", "owner_id", "status"),
    )


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(32), primary_key=True)
    # One profile per owner; the unique constraint is what makes find-or-create atomic.
    owner_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    profile_image = Column(String(512), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)
    blood_group = Column(String(4), nullable=True)
    height = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    address = Column(Text, nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    province = Column(String(255), nullable=False, default="")
    cnic = Column(String(32), nullable=False, default="")
    medical_conditions = Column(Text, nullable=False, default="")
    current_medications = Column(Text, nullable=False, default="")
    past_surgeries = Column(Text, nullable=False, default="")
    food_allergies = Column(Text, nullable=False, default="")
    drug_allergies = Column(Text, nullable=False, default="")
    other_allergies = Column(Text, nullable=False, default="")
    emergency_contact_name = Column(String(255), nullable=False, default="")
    emergency_contact_relationship = Column(String(255), nullable=False, default="")
    emergency_contact_phone = Column(String(32), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
