"""Health check endpoint."""

import logging
import os
from datetime import datetime, timezone
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from adapter.mongodb.connection import get_mongodb_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


def _check_mongodb() -> dict:
    try:
        client = get_mongodb_client()
        if client is None:
            return {"status": "unhealthy", "message": "Connection failed or not configured"}
        client.admin.command('ping')
        return {"status": "healthy", "message": "Connection successful"}
    except Exception as e:
        logger.warning("MongoDB health check failed", extra={"error": str(e)[:200]})
        return {"status": "unhealthy", "message": f"Connection error: {str(e)[:200]}"}


def _configured(*names: str) -> dict:
    missing = [name for name in names if not os.getenv(name)]
    if missing:
        return {"status": "disabled", "message": f"Missing: {', '.join(missing)}"}
    return {"status": "configured"}


@router.get("")
async def health():
    """Storage status decides the overall result; mail and Google are informational."""
    services = {
        "mongodb": _check_mongodb(),
        "mail": _configured("MAIL_SERVER"),
        "google_oauth": _configured("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"),
    }
    healthy = services["mongodb"]["status"] == "healthy"

    return JSONResponse(
        content={
            "success": healthy,
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "services": services,
        },
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
