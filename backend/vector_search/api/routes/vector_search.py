"""Vector search API endpoints."""

from fastapi import APIRouter

from vector_search.api.deps import Service
from vector_search.schemas import IndexProductsRequest, IndexRequest, SearchRequest

router = APIRouter()


def search_response(service, request: SearchRequest) -> dict:
    """Run a search and wrap the results with the effective parameters."""
    limit = request.limit or service.settings.max_search_results
    threshold = (
        request.threshold
        if request.threshold is not None
        else service.settings.default_similarity_threshold
    )
    results = service.search(request.query, limit, threshold)
    return {
        "success": True,
        "data": {
            "query": request.query,
            "results": [r.to_dict() for r in results],
            "count": len(results),
            "limit": limit,
            "threshold": threshold,
        },
    }


@router.post("/index")
def index_products(service: Service, request: IndexRequest | None = None) -> dict:
    """Index all catalog products."""
    request = request or IndexRequest()
    result = service.index_all(request.batch_size, request.force)
    return {"success": True, "data": result.to_dict()}


@router.post("/index/products")
def index_selected_products(service: Service, request: IndexProductsRequest) -> dict:
    """Index specific products, e.g. after they changed."""
    result = service.index_products(request.product_ids, request.force)
    return {"success": True, "data": result.to_dict()}


@router.post("/search")
def search(service: Service, request: SearchRequest) -> dict:
    """Search products by semantic similarity."""
    return search_response(service, request)


@router.get("/status")
def status(service: Service) -> dict:
    """Indexing coverage, backend and provider health."""
    return {
        "success": True,
        "data": {
            **service.status().to_dict(),
            "embedding_service": service.provider_health().to_dict(),
        },
    }


@router.get("/config")
def config(service: Service) -> dict:
    """Effective configuration with secrets masked."""
    return {"success": True, "data": service.settings.public_config()}


@router.get("/debug")
def debug(service: Service) -> dict:
    """Database capabilities and provider details."""
    return {"success": True, "data": service.diagnostics()}


@router.delete("/embeddings")
def clear_embeddings(service: Service) -> dict:
    """Delete every stored embedding."""
    deleted = service.clear_all()
    return {"success": True, "data": {"deleted": deleted}}


@router.delete("/embeddings/{product_id}")
def delete_product_embeddings(service: Service, product_id: str) -> dict:
    """Delete the embeddings of one product."""
    deleted = service.delete_product(product_id)
    return {"success": True, "data": {"product_id": product_id, "deleted": deleted}}
