"""Build the canonical text and content hash that represent a product."""

import hashlib
import html
import re
from dataclasses import dataclass

from vector_search.services.catalog import CatalogItem

TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ProductText:
    text: str
    content_hash: str


def strip_markup(value: str) -> str:
    """Remove HTML tags and entities, collapsing the leftover whitespace."""
    value = TAG_RE.sub(" ", value)
    value = html.unescape(value)
    return WHITESPACE_RE.sub(" ", value).strip()


def content_hash(text: str) -> str:
    """SHA-256 hex digest used for change detection."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_product_text(item: CatalogItem) -> ProductText:
    """
    Concatenate the searchable attributes of a product.

    Order: name, description (markup stripped), manufacturer, categories,
    then each property option followed by its group name. Empty parts are
    dropped; an item with no usable text gets a placeholder built from its id.
    """
    parts: list[str | None] = [
        item.name,
        strip_markup(item.description) if item.description else None,
        item.manufacturer,
        *item.categories,
    ]
    for option in item.properties:
        parts.append(option.name)
        parts.append(option.group)

    text = " ".join(p.strip() for p in parts if p and p.strip())
    if not text:
        text = f"Product {item.id}"

    return ProductText(text=text, content_hash=content_hash(text))
