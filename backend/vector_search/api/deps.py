"""API dependencies for dependency injection."""

import secrets
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from vector_search.services.vector_search import VectorSearchService


def get_service(request: Request) -> VectorSearchService:
    """The service built at application startup."""
    return request.app.state.vector_search


Service = Annotated[VectorSearchService, Depends(get_service)]


def get_db(service: Service) -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    with service.session_factory() as session:
        yield session


DbSession = Annotated[Session, Depends(get_db)]


def require_access_key(
    service: Service,
    sw_access_key: str | None = Header(default=None, alias="sw-access-key"),
) -> None:
    """Reject public requests without a configured access key."""
    if not sw_access_key or not any(
        secrets.compare_digest(sw_access_key, key)
        for key in service.settings.public_access_keys
    ):
        raise HTTPException(status_code=401, detail="Invalid or missing sw-access-key")
