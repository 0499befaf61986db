from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, File, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from medikeep.core.errors import ValidationError
from medikeep.domain.records import Owner
from medikeep.services.profile_service import ImageUpload, ProfileService
from medikeep.services.session_service import identify

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _service(request: Request) -> ProfileService:
    svc = getattr(getattr(request.app, "state", None), "profile_service", None)
    if not svc:
        raise RuntimeError("ProfileService not configured")
    return svc


@router.get("")
def get_profile(request: Request, owner: Owner = Depends(identify)):
    return _service(request).get(owner).to_dict()


@router.put("")
def update_profile(request: Request, payload: Any = Body(None), owner: Owner = Depends(identify)):
    return _service(request).update(owner, payload).to_dict()


@router.post("/image")
async def upload_profile_image(
    request: Request,
    profileImage: UploadFile | None = File(None),
    owner: Owner = Depends(identify),
):
    if profileImage is None or not profileImage.filename:
        raise ValidationError.single("profileImage", "No file uploaded")
    svc = _service(request)
    # One byte past the limit is enough to reject oversized uploads.
    data = await profileImage.read(svc.settings.max_image_bytes + 1)
    upload = ImageUpload(
        filename=profileImage.filename,
        content_type=(profileImage.content_type or "").lower(),
        data=data,
    )
    profile = await run_in_threadpool(svc.replace_image, owner, upload)
    return {"profileImage": profile.profile_image, "profile": profile.to_dict()}
