"""
FastAPI application: logging setup and router registration.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI

from pharmaguard.config import get_settings
from pharmaguard.routes import analysis, health


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Pharmacogenomic risk classification from VCF v4.2 files.",
        debug=settings.debug,
    )
    application.include_router(health.router)
    application.include_router(analysis.router)
    return application


app = create_app()
