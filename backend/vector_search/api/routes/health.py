"""Health check endpoints."""

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vector_search import __version__
from vector_search.api.deps import DbSession, Service

router = APIRouter()


def _database_ok(db) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


@router.get("/health")
def health_check(db: DbSession) -> dict:
    """Basic health check endpoint."""
    db_healthy = _database_ok(db)

    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": "connected" if db_healthy else "disconnected",
        "version": __version__,
    }


@router.get("/health/ready")
def readiness_check(db: DbSession, service: Service) -> dict:
    """Readiness check for load balancers."""
    checks = {
        "database": _database_ok(db),
        "embedding_provider": service.provider_health().healthy,
    }

    all_ready = all(checks.values())
    return {
        "ready": all_ready,
        "checks": checks,
    }
