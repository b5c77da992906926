"""API routes."""

from fastapi import APIRouter

from vector_search.api.routes import health, public, vector_search

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(vector_search.router, prefix="/vector-search", tags=["Vector Search"])
api_router.include_router(public.router, prefix="/public/vector-search", tags=["Public Search"])
