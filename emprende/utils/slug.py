"""Helpers for SEO-friendly URL slugs.

Businesses are addressed as ``/businesses/{slug}``; products and services
join the business name and the item name (``cafe-tico-bolsa-500g``). When a
name slugifies to nothing the record ID is used instead, so every record
stays addressable.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")
_COMBINING_MARKS_RE = re.compile(r"[\u0300-\u036f]")
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")
_HYPHENS_RE = re.compile(r"-+")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def generate_slug(text: Any) -> str:
    """Convert *text* to a URL-friendly slug; non-text input yields ``""``."""

    if not text or not isinstance(text, str):
        return ""

    slug = _WHITESPACE_RE.sub("-", text.lower().strip())
    slug = _COMBINING_MARKS_RE.sub("", unicodedata.normalize("NFD", slug))
    slug = _INVALID_CHARS_RE.sub("", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")


def generate_business_slug(name: str | None, id: str | None) -> str:
    if not name and not id:
        return ""
    return generate_slug(name or "") or id or ""


def _join_slug(business_name: str | None, item_name: str | None, id: str | None) -> str:
    if not business_name and not item_name and not id:
        return ""

    business_slug = generate_slug(business_name or "")
    item_slug = generate_slug(item_name or "")
    if business_slug and item_slug:
        return f"{business_slug}-{item_slug}"

    # Half a slug is never used; the ID is the only fallback.
    return id or ""


def generate_product_slug(business_name: str | None, product_name: str | None, id: str | None) -> str:
    return _join_slug(business_name, product_name, id)


def generate_service_slug(business_name: str | None, service_name: str | None, id: str | None) -> str:
    return _join_slug(business_name, service_name, id)


def is_uuid(value: Any) -> bool:
    return isinstance(value, str) and _UUID_RE.fullmatch(value) is not None


def extract_id_from_slug(slug: str) -> str:
    """Return the record ID carried by *slug*.

    A UUID-shaped slug already is the ID and is returned unchanged. Anything
    else is returned unchanged too; use :func:`is_uuid` to tell the two apart
    before falling back to a name-based lookup in the catalog store.
    """

    return slug
