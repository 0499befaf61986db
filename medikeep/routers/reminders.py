from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request

from medikeep.domain.records import Owner
from medikeep.services.reminder_service import ReminderService
from medikeep.services.session_service import identify

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _service(request: Request) -> ReminderService:
    svc = getattr(getattr(request.app, "state", None), "reminder_service", None)
    if not svc:
        raise RuntimeError("ReminderService not configured")
    return svc


@router.get("")
def list_reminders(request: Request, status: Optional[str] = None, owner: Owner = Depends(identify)):
    return [r.to_dict() for r in _service(request).list(owner, status)]


@router.post("", status_code=201)
def create_reminder(request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)):
    return _service(request).create(owner, payload).to_dict()


@router.get("/{record_id}")
def get_reminder(record_id: str, request: Request, owner: Owner = Depends(identify)):
    return _service(request).get(record_id, owner).to_dict()


@router.put("/{record_id}")
def update_reminder(record_id: str, request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)):
    return _service(request).update(record_id, owner, payload).to_dict()


@router.put("/{record_id}/taken")
def mark_reminder_taken(record_id: str, request: Request, owner: Owner = Depends(identify)):
    return _service(request).mark_taken(record_id, owner).to_dict()


@router.delete("/{record_id}")
def delete_reminder(record_id: str, request: Request, owner: Owner = Depends(identify)):
    _service(request).delete(record_id, owner)
    return {"message": "Reminder deleted"}
