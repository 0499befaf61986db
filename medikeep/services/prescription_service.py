"""
Prescription use cases: owner-scoped CRUD and sharing by email.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from medikeep.core.errors import DeliveryError, MediKeepError, NotFound
from medikeep.core.mailer import send_email
from medikeep.domain.records import Owner, PrescriptionRecord
from medikeep.domain.rules import PRESCRIPTION_RULES, SHARE_RULES, validate
from medikeep.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")

_templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)


def format_date(value) -> str:
    return value.strftime("%B %d, %Y").replace(" 0", " ")


class PrescriptionService:
    """Handles listing, editing, deleting and sharing a patient's prescriptions."""

    def __init__(self, repository: SQLRepository | None = None, notifier: Optional[Callable] = None) -> None:
        self.repository = repository or SQLRepository()
        self.notifier = notifier

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def list(self, owner: Owner) -> list[PrescriptionRecord]:
        return self.repository.list_prescriptions(owner.id)

    def get(self, record_id: str, owner: Owner) -> PrescriptionRecord:
        record = self.repository.get_prescription(record_id, owner.id)
        if not record:
            raise NotFound("Prescription")
        return record

    def create(self, owner: Owner, data) -> PrescriptionRecord:
        values = validate(data, PRESCRIPTION_RULES)
        record = self.repository.insert_prescription(owner.id, values, self._now())
        logger.info("Prescription created", extra={"owner_id": owner.id, "record_id": record.id})
        return record

    def update(self, record_id: str, owner: Owner, data) -> PrescriptionRecord:
        # Full replace: optional fields absent from data fall back to their defaults.
        values = validate(data, PRESCRIPTION_RULES)
        record = self.repository.update_prescription(record_id, owner.id, values, self._now())
        if not record:
            raise NotFound("Prescription")
        return record

    def delete(self, record_id: str, owner: Owner) -> None:
        if not self.repository.delete_prescription(record_id, owner.id):
            raise NotFound("Prescription")

    # -------------------------------------- share --------------------------------------
    def render_share_email(self, record: PrescriptionRecord, sender: str = "") -> tuple[str, str, str]:
        """Return ``(subject, html_body, text_body)`` for a prescription."""
        context = {"prescription": record, "date_label": format_date(record.date), "sender": sender}
        subject = f"Prescription for {record.medication_name}"
        html_body = _templates.get_template("prescription_share.html").render(**context)
        text_body = _templates.get_template("prescription_share.txt").render(**context)
        return subject, html_body, text_body

    def share(self, record_id: str, owner: Owner, data) -> str:
        """Email the prescription to ``recipientEmail``; returns the recipient."""
        record = self.get(record_id, owner)
        recipient = validate(data, SHARE_RULES)["recipient_email"]
        subject, html_body, text_body = self.render_share_email(record, owner.name or owner.email)
        notify = self.notifier or send_email
        try:
            notify(subject, recipient, html_body, text_body)
        except MediKeepError:
            raise
        except Exception as exc:
            logger.error("Notifier failed for prescription %s: %s", record.id, exc, extra={"owner_id": owner.id})
            raise DeliveryError("Prescription could not be shared") from exc
        logger.info("Prescription shared", extra={"owner_id": owner.id, "record_id": record.id})
        return recipient
