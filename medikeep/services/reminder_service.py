"""
Medication reminder use cases.

A reminder moves to ``taken`` only through mark_taken. ``missed`` is written
by an external scheduler; nothing here produces it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from medikeep.core.errors import NotFound, ValidationError
from medikeep.domain.records import Owner, ReminderRecord, ReminderStatus
from medikeep.domain.rules import REMINDER_RULES, validate
from medikeep.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)


class ReminderService:
    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def list(self, owner: Owner, status: str | None = None) -> list[ReminderRecord]:
        """Reminders ordered by date then time, optionally filtered by status."""
        status_value = (status or "").strip() or None
        if status_value and status_value not in {s.value for s in ReminderStatus}:
            raise ValidationError.single("status", "status must be one of: pending, taken, missed")
        return self.repository.list_reminders(owner.id, status_value)

    def get(self, record_id: str, owner: Owner) -> ReminderRecord:
        record = self.repository.get_reminder(record_id, owner.id)
        if not record:
            raise NotFound("Reminder")
        return record

    def create(self, owner: Owner, data) -> ReminderRecord:
        values = validate(data, REMINDER_RULES)
        record = self.repository.insert_reminder(owner.id, values, self._now())
        logger.info("Reminder created", extra={"owner_id": owner.id, "record_id": record.id})
        return record

    def update(self, record_id: str, owner: Owner, data) -> ReminderRecord:
        values = validate(data, REMINDER_RULES)
        record = self.repository.update_reminder(record_id, owner.id, values)
        if not record:
            raise NotFound("Reminder")
        return record

    def mark_taken(self, record_id: str, owner: Owner) -> ReminderRecord:
        # Repeated calls keep status=taken and refresh takenAt.
        record = self.repository.mark_reminder_taken(record_id, owner.id, self._now())
        if not record:
            raise NotFound("Reminder")
        logger.info("Reminder marked taken", extra={"owner_id": owner.id, "record_id": record.id})
        return record

    def delete(self, record_id: str, owner: Owner) -> None:
        if not self.repository.delete_reminder(record_id, owner.id):
            raise NotFound("Reminder")
