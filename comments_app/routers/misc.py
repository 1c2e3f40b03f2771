from __future__ import annotations

from fastapi import APIRouter

from comments_app.core.time import now_ts

router = APIRouter(tags=["misc"])

@router.get("/api/ping")
async def ping():
    return {"ok": True}

@router.get("/healthz")
async def healthz():
    return {"ok": True, "ts": now_ts()}
