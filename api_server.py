from __future__ import annotations  # FastAPI server exposing the interview dialogue engine

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import configure, router
from config.settings import Settings
from services.bootstrap import build_service
from services.sessions import InterviewSessionService


logger = logging.getLogger(__name__)


def create_app(
    service: Optional[InterviewSessionService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:  # Build the app around one shared session service
    service = service or build_service(settings)
    configure(service)

    app = FastAPI(title="Interview Dialogue API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    app.include_router(router)

    @app.get("/healthz")
    def healthz() -> dict:  # Liveness probe with corpus size
        retriever = service.deps.retriever
        return {"status": "ok", "chunks": len(getattr(retriever, "chunks", []))}

    logger.info("Interview dialogue API ready")
    return app


app = create_app()
