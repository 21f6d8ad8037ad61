"""Health and diagnostics endpoints."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz(request: Request):
    """Lightweight liveness check (no deps)."""
    manager = getattr(request.app.state, "presence", None)
    snapshot = manager.snapshot() if manager else None
    return {
        "status": "ok",
        "presence_connected": bool(snapshot and snapshot.connected),
    }
