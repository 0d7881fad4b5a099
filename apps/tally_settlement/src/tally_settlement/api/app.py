"""FastAPI app bootstrap for tally_settlement."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tally_settlement.api.error_handlers import register_error_handlers
from tally_settlement.api.routes import v1_router
from tally_settlement.core.settings import Settings, get_settings
from tally_settlement.db.session import get_db_session

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application instance."""

    app = FastAPI(
        title="Tally Settlement API",
        description="Track shared expenses and settle them with few transfers.",
        version="0.1.0",
    )

    @app.get("/health/live", include_in_schema=False)
    def health_live() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/health/ready", include_in_schema=False)
    def health_ready(
        settings: Annotated[Settings, Depends(get_settings)],
        db_session: Annotated[Session, Depends(get_db_session)],
    ) -> dict[str, str]:
        """Report readiness; only the database backend needs a ping."""

        if settings.storage_backend == "database":
            try:
                db_session.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                logger.warning("database_unavailable", extra={"error": str(exc)})
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Database is unavailable",
                ) from exc
        return {"status": "ready", "storage": settings.storage_backend}

    register_error_handlers(app)
    app.include_router(v1_router)
    return app


app = create_app()
