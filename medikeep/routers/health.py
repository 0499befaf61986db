from fastapi import APIRouter

from medikeep.db.session import health_check

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    database = health_check()
    return {"status": "ok" if database else "degraded", "database": database}
