"""FastAPI application factory."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from fundingarb.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the scanner.

    Returns:
        Application with the JSON API mounted under ``/api``. Route handlers
        expect ``app.state.scanner`` to be set.
    """
    app = FastAPI(
        title="Funding Rate Spread Scanner",
        lifespan=lifespan,
    )
    app.include_router(routes.router, prefix="/api")
    return app
