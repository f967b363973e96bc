from fastapi import APIRouter
from fastapi.responses import JSONResponse

from payments_api.db import db_ping
from payments_api.redis_client import redis_ping

router = APIRouter(tags=["health"])

@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

# readiness probe: 200 only when db + redis are reachable
@router.get("/ready")
def ready():
    checks = {"db": db_ping(), "redis": redis_ping()}
    ok = all(checks.values())
    return JSONResponse(
        status_code=200 if ok else 503,
        content={"status": "ok" if ok else "unready", "checks": checks},
    )
