from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from medikeep.core.config import get_settings
from medikeep.core.rate_limiter import rate_limit_ip
from medikeep.domain.records import Owner
from medikeep.services.prescription_service import PrescriptionService
from medikeep.services.session_service import identify

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])


def _service(request: Request) -> PrescriptionService:
    svc = getattr(getattr(request.app, "state", None), "prescription_service", None)
    if not svc:
        raise RuntimeError("PrescriptionService not configured")
    return svc


@router.get("")
def list_prescriptions(request: Request, owner: Owner = Depends(identify)):
    return [p.to_dict() for p in _service(request).list(owner)]


@router.post("", status_code=201)
def create_prescription(request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)):
    return _service(request).create(owner, payload).to_dict()


@router.get("/{record_id}")
def get_prescription(record_id: str, request: Request, owner: Owner = Depends(identify)):
    return _service(request).get(record_id, owner).to_dict()


@router.put("/{record_id}")
def update_prescription(
    record_id: str, request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)
):
    return _service(request).update(record_id, owner, payload).to_dict()


@router.delete("/{record_id}")
def delete_prescription(record_id: str, request: Request, owner: Owner = Depends(identify)):
    _service(request).delete(record_id, owner)
    return {"message": "Prescription deleted"}


@router.post("/{record_id}/share")
def share_prescription(
    record_id: str, request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)
):
    settings = get_settings()
    rate_limit_ip(
        request,
        "share",
        limit=settings.share_rate_limit,
        window_seconds=settings.share_rate_window_seconds,
    )
    recipient = _service(request).share(record_id, owner, payload)
    return {"message": "Prescription shared successfully", "recipientEmail": recipient}
