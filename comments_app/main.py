from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from comments_app.core.settings import S
from comments_app.metrics import metrics_endpoint, metrics_middleware, set_app_info
from comments_app.routers.comments import router as comments_router
from comments_app.routers.misc import router as misc_router

def create_app() -> FastAPI:
    app = FastAPI(title="Post Comments", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if S.metrics_enabled:
        app.middleware("http")(metrics_middleware)
        set_app_info(app.title, app.version)
        app.get("/metrics")(metrics_endpoint)

    app.include_router(comments_router)
    app.include_router(misc_router)

    return app

app = create_app()
