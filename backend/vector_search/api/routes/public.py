"""Public (storefront) vector search endpoints, guarded by an access key."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vector_search import __version__
from vector_search.api.deps import Service, require_access_key
from vector_search.api.routes.vector_search import search_response
from vector_search.exceptions import StorageUnavailable
from vector_search.schemas import SearchRequest

router = APIRouter()


@router.post("/search", dependencies=[Depends(require_access_key)])
def public_search(service: Service, request: SearchRequest) -> dict:
    """Search products by semantic similarity."""
    return search_response(service, request)


@router.get("/health")
def public_health(service: Service) -> JSONResponse:
    """Provider and database health; 503 when degraded."""
    provider = service.provider_health()
    try:
        embeddings = service.store.count()
        database = {"status": "healthy", "embeddings": embeddings}
    except StorageUnavailable as e:
        database = {"status": "error", "error": str(e)}

    healthy = provider.healthy and database["status"] == "healthy"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "success": True,
            "status": "healthy" if healthy else "degraded",
            "data": {
                "embedding_service": provider.to_dict(),
                "database": database,
                "version": __version__,
            },
        },
    )
