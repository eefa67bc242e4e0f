from __future__ import annotations  # FastAPI server exposing the interview session engine

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as interview_router
from config import default_config, settings
from interview.flow import InterviewEngine
from oracle import LlmOracle
from storage import TranscriptArchive


logger = logging.getLogger(__name__)


def build_engine() -> InterviewEngine:  # Wire the engine from environment settings
    config = default_config(settings)
    logger.info("Using oracle route %s (%s)", config.route.name, config.route.model)
    return InterviewEngine(
        LlmOracle(config.route),
        plan=config.interview,
        scoring=config.scoring,
        archive=TranscriptArchive(),
    )


def create_app(engine: Optional[InterviewEngine] = None) -> FastAPI:  # Build the ASGI application
    application = FastAPI(title="Interview Readiness API")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    application.state.engine = engine if engine is not None else build_engine()
    application.include_router(interview_router)

    @application.get("/api/health")
    def health() -> dict:  # Liveness probe
        return {"status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
