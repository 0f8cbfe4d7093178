"""
api/app.py — FastAPI application factory
==========================================
Builds the HTTP front end around a fresh `SessionRegistry`, stored on
``app.state.registry`` so each app (and each test) gets its own set of
scan sessions.

Cross-origin access follows `config.CORS_ORIGINS` (env
`VITALS_CORS_ORIGINS`); the default ``*`` is meant for local demos only.
"""

import time
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import API_TITLE, API_VERSION, CORS_ORIGINS
from engine.registry import SessionRegistry

DESCRIPTION = (
    "Streams optical, acoustic or motion samples into scan sessions and "
    "returns heart rate, rhythm irregularity and SpO2 estimates. "
    "⚠️ Wellness use only, not a medical device."
)


def create_app(clock: Callable[[], float] = time.monotonic) -> FastAPI:
    """
    Parameters
    ----------
    clock : callable   Monotonic seconds used for session timeouts.

    Returns
    -------
    FastAPI  ready to hand to uvicorn or `fastapi.testclient.TestClient`.
    """
    app = FastAPI(title=API_TITLE, version=API_VERSION, description=DESCRIPTION)
    app.state.registry = SessionRegistry(clock=clock)

    # Credentials cannot be combined with a wildcard origin
    wildcard = CORS_ORIGINS == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app
