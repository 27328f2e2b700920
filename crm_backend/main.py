from __future__ import annotations

import logging
from typing import Dict

from dotenv import load_dotenv

# Load environment variables from .env at project root
# This runs before the app is created so all downstream modules see the env.
load_dotenv()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from crm_backend.config import settings  # noqa: E402
from crm_backend.db import init_db  # noqa: E402
from crm_backend.routers import cold_leads as cold_leads_router  # noqa: E402
from crm_backend.routers import customers as customers_router  # noqa: E402
from crm_backend.routers import ingestion as ingestion_router  # noqa: E402
from crm_backend.routers import integrations as integrations_router  # noqa: E402
from crm_backend.routers import interactions as interactions_router  # noqa: E402
from crm_backend.routers import reporting as reporting_router  # noqa: E402
from crm_backend.routers import transactions as transactions_router  # noqa: E402
from crm_backend.routers import users as users_router  # noqa: E402
from crm_backend.routers import websites as websites_router  # noqa: E402

logger = logging.getLogger("crm_backend.main")


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    # Lead pool + customers
    app.include_router(cold_leads_router.router)
    app.include_router(customers_router.router)

    # Ledger aggregation and CSV import
    app.include_router(transactions_router.router)
    app.include_router(ingestion_router.router)

    # Contact history
    app.include_router(interactions_router.router)
    app.include_router(integrations_router.router)

    app.include_router(reporting_router.router)
    app.include_router(users_router.router)
    app.include_router(websites_router.router)

    @app.on_event("startup")
    async def on_startup() -> None:
        """Initialize resources on startup."""
        logger.info("Starting %s...", settings.app_name)
        init_db()
        logger.info("%s started.", settings.app_name)

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok", "app": settings.app_name}

    return app


app = create_app()
