"""
Pytest configuration and shared fixtures.

Uses an in-memory SQLite database (JSON embedding storage) and a fake
embedding service behind ``httpx.MockTransport``, so no PostgreSQL server
or network access is needed.
"""

import json
import re
from datetime import datetime

import httpx
import pytest
from sqlalchemy.pool import StaticPool

from vector_search.config import Settings
from vector_search.database import create_db_engine, create_session_factory
from vector_search.models import (
    Category,
    Manufacturer,
    Product,
    ProductCategory,
    ProductProperty,
    PropertyGroup,
    PropertyGroupOption,
)
from vector_search.services.vector_search import build_service

DIMENSIONS = 128
SERVICE_URL = "http://embedding.test"
ACCESS_KEY = "test-access-key"

CREATED_AT = datetime(2024, 1, 1, 12, 0, 0)

WORD_RE = re.compile(r"\w+")

# Word -> vector slot, assigned on first sight so test vocabularies never collide
WORD_SLOTS: dict[str, int] = {}


def word_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Deterministic bag-of-words vector: texts sharing words point the same way."""
    vector = [0.0] * dimensions
    for word in WORD_RE.findall(text.lower()):
        slot = WORD_SLOTS.setdefault(word, len(WORD_SLOTS))
        vector[slot % dimensions] += 1.0
    return vector


class EmbeddingServiceStub:
    """Fake embedding service answering ``/embed``, ``/embed/batch`` and ``/health``."""

    def __init__(self, dimensions: int = DIMENSIONS):
        self.dimensions = dimensions
        self.calls: list[str] = []
        self.batch_sizes: list[int] = []
        self.fail_all = False
        self.fail_batches = 0

    def batch_calls(self) -> int:
        return self.calls.count("/embed/batch")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)

        if self.fail_all:
            return httpx.Response(500, json={"detail": "boom"})

        if path == "/health":
            return httpx.Response(200, json={
                "status": "healthy",
                "model": "stub-model",
                "dimensions": self.dimensions,
                "ready": True,
            })

        payload = json.loads(request.content)
        if path == "/embed":
            return httpx.Response(200, json={"embedding": word_vector(payload["text"], self.dimensions)})

        if path == "/embed/batch":
            if self.fail_batches:
                self.fail_batches -= 1
                return httpx.Response(503, json={"detail": "overloaded"})
            self.batch_sizes.append(len(payload["texts"]))
            return httpx.Response(200, json={
                "embeddings": [word_vector(t, self.dimensions) for t in payload["texts"]],
            })

        return httpx.Response(404)


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "storage_backend": "json",
        "embedding_mode": "embedding_service",
        "embedding_service_url": SERVICE_URL,
        "openai_api_key": "",
        "log_level": "INFO",
        "vector_search_enabled": True,
        "embedding_dimensions": DIMENSIONS,
        "batch_size": 2,
        "default_similarity_threshold": 0.7,
        "max_search_results": 10,
        "public_access_keys": [ACCESS_KEY],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def seed_catalog(session_factory) -> list[str]:
    """Insert a small live catalog; returns product ids in indexing order."""
    with session_factory.begin() as session:
        acme = Manufacturer(id="m-acme", name="Acme Sports")
        shoes = Category(id="c-shoes", name="Shoes")
        kitchen = Category(id="c-kitchen", name="Kitchen")
        color = PropertyGroup(id="g-color", name="Color")
        red = PropertyGroupOption(id="o-red", name="Red", group=color)
        steel = PropertyGroupOption(id="o-steel", name="Steel", group=color)

        shoe = Product(
            id="p-shoe",
            name="Red Running Shoe",
            description="<p>Lightweight running shoe for road races</p>",
            manufacturer=acme,
            created_at=CREATED_AT,
        )
        shoe.product_categories.append(ProductCategory(category=shoes, position=0))
        shoe.product_properties.append(ProductProperty(option=red, position=0))

        kettle = Product(
            id="p-kettle",
            name="Electric Kettle",
            description="Boils water fast",
            created_at=CREATED_AT,
        )
        kettle.product_categories.append(ProductCategory(category=kitchen, position=0))
        kettle.product_properties.append(ProductProperty(option=steel, position=0))

        session.add_all([
            shoe,
            kettle,
            Product(id="p-lamp", name="Desk Lamp", description="LED lamp with adjustable arm", created_at=CREATED_AT),
            Product(id="p-mug", name="Coffee Mug", description="Ceramic mug for hot drinks", created_at=CREATED_AT),
            Product(id="p-empty", created_at=CREATED_AT),
        ])

    # Equal created_at, so (created_at, id) order is the id order
    return ["p-empty", "p-kettle", "p-lamp", "p-mug", "p-shoe"]


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions via a static pool."""
    db_engine = create_db_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def embedding_stub():
    return EmbeddingServiceStub()


@pytest.fixture
def http_client(embedding_stub):
    client = httpx.Client(transport=httpx.MockTransport(embedding_stub), base_url=SERVICE_URL)
    yield client
    client.close()


@pytest.fixture
def service(settings, engine, http_client):
    """Service wired to the in-memory database and the stub embedding service."""
    vector_search = build_service(settings, engine=engine, http_client=http_client)
    yield vector_search
    vector_search.close()


@pytest.fixture
def product_ids(service):
    return seed_catalog(service.session_factory)
