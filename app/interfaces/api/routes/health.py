from fastapi import APIRouter

from app.infrastructure.notifications import notification_hub

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, object]:
    return {"status": "ok", **notification_hub.stats()}
