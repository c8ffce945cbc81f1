"""Slug-addressed catalog endpoints and WhatsApp contact links."""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, HTTPException

from emprende.config import ConfigurationError
from emprende.models import Business, ContactLink, Product, Service, WhatsAppStats
from emprende.services import catalog_db
from emprende.services.catalog_db import CatalogDB
from emprende.services.whatsapp import WhatsAppLinkError, contact_link

router = APIRouter()
logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _db() -> CatalogDB:
    try:
        return catalog_db.get_catalog_db()
    except ConfigurationError as exc:
        logger.error("Catalog unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _lookup(finder: Callable[[str], T | None], slug: str, label: str) -> T:
    found = finder(slug)
    if found is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return found


def _link(listing: Business | Product | Service) -> ContactLink:
    try:
        return contact_link(listing)
    except WhatsAppLinkError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def _record_contact(database: CatalogDB, business_id: str, **target: str) -> None:
    # A failed counter update must not keep the visitor from contacting.
    try:
        database.record_whatsapp_contact(business_id, **target)
    except Exception as exc:  # pragma: no cover
        logger.exception("Error recording WhatsApp contact: %s", exc)


# ---------------------------------------------------------------------------
# Businesses
# ---------------------------------------------------------------------------


@router.get("/businesses/{slug}", response_model=Business)
def get_business(slug: str):
    return _lookup(_db().get_business_by_slug, slug, "Business")


@router.get("/businesses/{slug}/contact", response_model=ContactLink)
def business_contact(slug: str):
    business = _lookup(_db().get_business_by_slug, slug, "Business")
    return _link(business)


@router.get("/businesses/{slug}/whatsapp-stats", response_model=WhatsAppStats)
def business_whatsapp_stats(slug: str):
    database = _db()
    business = _lookup(database.get_business_by_slug, slug, "Business")
    return database.get_whatsapp_stats(business.id)


# ---------------------------------------------------------------------------
# Products and services
# ---------------------------------------------------------------------------


@router.get("/products/{slug}", response_model=Product)
def get_product(slug: str):
    return _lookup(_db().get_product_by_slug, slug, "Product")


@router.post("/products/{slug}/contact", response_model=ContactLink)
def product_contact(slug: str):
    database = _db()
    product = _lookup(database.get_product_by_slug, slug, "Product")
    link = _link(product)
    _record_contact(database, product.business_id, product_id=product.id)
    return link


@router.get("/services/{slug}", response_model=Service)
def get_service(slug: str):
    return _lookup(_db().get_service_by_slug, slug, "Service")


@router.post("/services/{slug}/contact", response_model=ContactLink)
def service_contact(slug: str):
    database = _db()
    service = _lookup(database.get_service_by_slug, slug, "Service")
    link = _link(service)
    _record_contact(database, service.business_id, service_id=service.id)
    return link
