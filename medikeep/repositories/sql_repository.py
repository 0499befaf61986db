"""High-level data access helpers backed by SQLAlchemy.

Every record query is filtered by owner. Mutations are single statements
guarded by ``(id, owner_id)`` so a request racing a delete cannot resurrect or
touch a row the caller no longer owns.
"""
from __future__ import annotations

import uuid
from dataclasses import fields
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from medikeep.db.models import Prescription, Profile, Reminder, User
from medikeep.db.session import get_session
from medikeep.domain.records import (
    PrescriptionRecord,
    ProfileRecord,
    ReminderRecord,
    ReminderStatus,
)


def new_id() -> str:
    return uuid.uuid4().hex


def _prescription(row: Prescription) -> PrescriptionRecord:
    return PrescriptionRecord(
        id=row.id,
        owner_id=row.owner_id,
        medication_name=row.medication_name,
        doctor_name=row.doctor_name,
        patient_name=row.patient_name,
        date=row.date,
        dosage=row.dosage,
        instructions=row.instructions,
        side_effects=row.side_effects,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _reminder(row: Reminder) -> ReminderRecord:
    return ReminderRecord(
        id=row.id,
        owner_id=row.owner_id,
        medication=row.medication,
        dosage=row.dosage,
        time=row.time,
        date=row.date,
        notes=row.notes,
        status=row.status,
        taken_at=row.taken_at,
        created_at=row.created_at,
    )


_PROFILE_ATTRS = tuple(f.name for f in fields(ProfileRecord))


def _profile(row: Profile) -> ProfileRecord:
    return ProfileRecord(**{attr: getattr(row, attr) for attr in _PROFILE_ATTRS})


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def create_user(self, email: str, name: str = "") -> User:
        entity = User(id=new_id(), email=email, name=name or "")
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    # -------------------------- prescriptions --------------------------
    def list_prescriptions(self, owner_id: str) -> list[PrescriptionRecord]:
        with get_session() as session:
            stmt = (
                select(Prescription)
                .where(Prescription.owner_id == owner_id)
                .order_by(Prescription.date.desc(), Prescription.created_at.desc())
            )
            return [_prescription(row) for row in session.execute(stmt).scalars().all()]

    def get_prescription(self, record_id: str, owner_id: str) -> Optional[PrescriptionRecord]:
        with get_session() as session:
            stmt = select(Prescription).where(Prescription.id == record_id, Prescription.owner_id == owner_id)
            row = session.execute(stmt).scalar_one_or_none()
            return _prescription(row) if row else None

    def insert_prescription(self, owner_id: str, values: dict, now: datetime) -> PrescriptionRecord:
        entity = Prescription(id=new_id(), owner_id=owner_id, created_at=now, updated_at=now, **values)
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return _prescription(entity)

    def update_prescription(
        self, record_id: str, owner_id: str, values: dict, now: datetime
    ) -> Optional[PrescriptionRecord]:
        with get_session() as session:
            stmt = (
                update(Prescription)
                .where(Prescription.id == record_id, Prescription.owner_id == owner_id)
                .values(**values, updated_at=now)
            )
            if session.execute(stmt).rowcount == 0:
                session.rollback()
                return None
            row = session.get(Prescription, record_id)
            record = _prescription(row)
            session.commit()
            return record

    def delete_prescription(self, record_id: str, owner_id: str) -> bool:
        with get_session() as session:
            stmt = delete(Prescription).where(Prescription.id == record_id, Prescription.owner_id == owner_id)
            deleted = session.execute(stmt).rowcount
            session.commit()
            return deleted > 0

    # -------------------------- reminders --------------------------
    def list_reminders(self, owner_id: str, status: str | None = None) -> list[ReminderRecord]:
        with get_session() as session:
            stmt = select(Reminder).where(Reminder.owner_id == owner_id)
            if status:
                stmt = stmt.where(Reminder.status == status)
            stmt = stmt.order_by(Reminder.date.asc(), Reminder.time.asc(), Reminder.created_at.asc())
            return [_reminder(row) for row in session.execute(stmt).scalars().all()]

    def get_reminder(self, record_id: str, owner_id: str) -> Optional[ReminderRecord]:
        with get_session() as session:
            stmt = select(Reminder).where(Reminder.id == record_id, Reminder.owner_id == owner_id)
            row = session.execute(stmt).scalar_one_or_none()
            return _reminder(row) if row else None

    def insert_reminder(self, owner_id: str, values: dict, now: datetime) -> ReminderRecord:
        entity = Reminder(
            id=new_id(),
            owner_id=owner_id,
            status=ReminderStatus.PENDING.value,
            taken_at=None,
            created_at=now,
            **values,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return _reminder(entity)

    def _update_reminder(self, record_id: str, owner_id: str, values: dict) -> Optional[ReminderRecord]:
        with get_session() as session:
            stmt = (
                update(Reminder)
                .where(Reminder.id == record_id, Reminder.owner_id == owner_id)
                .values(**values)
            )
            if session.execute(stmt).rowcount == 0:
                session.rollback()
                return None
            record = _reminder(session.get(Reminder, record_id))
            session.commit()
            return record

    def update_reminder(self, record_id: str, owner_id: str, values: dict) -> Optional[ReminderRecord]:
        return self._update_reminder(record_id, owner_id, values)

    def mark_reminder_taken(self, record_id: str, owner_id: str, now: datetime) -> Optional[ReminderRecord]:
        return self._update_reminder(
            record_id, owner_id, {"status": ReminderStatus.TAKEN.value, "taken_at": now}
        )

    def delete_reminder(self, record_id: str, owner_id: str) -> bool:
        with get_session() as session:
            stmt = delete(Reminder).where(Reminder.id == record_id, Reminder.owner_id == owner_id)
            deleted = session.execute(stmt).rowcount
            session.commit()
            return deleted > 0

    # -------------------------- profiles --------------------------
    def _find_profile(self, session, owner_id: str) -> Optional[Profile]:
        stmt = select(Profile).where(Profile.owner_id == owner_id)
        return session.execute(stmt).scalar_one_or_none()

    def get_profile(self, owner_id: str) -> Optional[ProfileRecord]:
        with get_session() as session:
            row = self._find_profile(session, owner_id)
            return _profile(row) if row else None

    def get_or_create_profile(self, owner_id: str, defaults: dict, now: datetime) -> tuple[Optional[ProfileRecord], bool]:
        """Return ``(profile, created)``; at most one profile per owner ever exists.

        A concurrent insert for the same owner loses on the unique constraint,
        rolls back and reads the winner's row instead. ``(None, False)`` means
        the conflicting row vanished before it could be read.
        """
        with get_session() as session:
            row = self._find_profile(session, owner_id)
            if row:
                return _profile(row), False
            entity = Profile(id=new_id(), owner_id=owner_id, created_at=now, updated_at=now, **defaults)
            session.add(entity)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                row = self._find_profile(session, owner_id)
                return (_profile(row) if row else None), False
            session.refresh(entity)
            return _profile(entity), True

    def update_profile(self, owner_id: str, values: dict, now: datetime) -> Optional[ProfileRecord]:
        with get_session() as session:
            stmt = update(Profile).where(Profile.owner_id == owner_id).values(**values, updated_at=now)
            if session.execute(stmt).rowcount == 0:
                session.rollback()
                return None
            record = _profile(self._find_profile(session, owner_id))
            session.commit()
            return record

    def swap_profile_image(
        self, owner_id: str, expected_path: str, new_path: str, now: datetime
    ) -> Optional[ProfileRecord]:
        """Point the profile at ``new_path`` only if it still references ``expected_path``."""
        with get_session() as session:
            stmt = (
                update(Profile)
                .where(Profile.owner_id == owner_id, Profile.profile_image == expected_path)
                .values(profile_image=new_path, updated_at=now)
            )
            if session.execute(stmt).rowcount == 0:
                session.rollback()
                return None
            record = _profile(self._find_profile(session, owner_id))
            session.commit()
            return record
