from datetime import datetime, timezone

from fastapi import APIRouter

from expense_api.responses import iso, success

router = APIRouter(tags=["System"])


@router.get("/health")
def health():
    return success({
        "status": "ok",
        "message": "Server is running",
        "timestamp": iso(datetime.now(timezone.utc)),
    })
