"""Firebase Realtime Database access for the marketplace catalog.

This module reads businesses, products and services and keeps WhatsApp
contact counters, stored under the following path structure:

/businesses/{business_id}
/products/{product_id}
/services/{service_id}
/whatsapp_stats/{business_id}/products/{product_id}
/whatsapp_stats/{business_id}/services/{service_id}

Records are validated with Pydantic models before being returned. Detail
pages address records by slug; UUID-shaped slugs are looked up directly by
ID and anything else is matched against the slugs generated from the
active records.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable, TypeVar

import firebase_admin
from firebase_admin import credentials, db
from pydantic import BaseModel, ValidationError

from emprende.config import ConfigurationError, Settings, get_settings
from emprende.models import Business, ContactStat, Product, Service, WhatsAppStats
from emprende.utils.slug import extract_id_from_slug, is_uuid

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", Product, Service)


# ---------------------------------------------------------------------------
# Initialise the Firebase Admin SDK exactly once.
# ---------------------------------------------------------------------------


def _initialise_app(settings: Settings) -> None:
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return

    database_url = settings.database_url
    if not database_url:
        raise ConfigurationError("Firebase", ["FIREBASE_DATABASE_URL or PROJECT_ID"])

    if settings.firebase_credentials_json:
        # Accept path or JSON string
        cred_obj: credentials.Base = (
            credentials.Certificate(settings.firebase_credentials_json)
            if settings.firebase_credentials_json.endswith(".json")
            else credentials.Certificate(json.loads(settings.firebase_credentials_json))
        )
    else:
        # Attempt default credentials (useful on Cloud Run with workload identity)
        cred_obj = credentials.ApplicationDefault()

    firebase_admin.initialize_app(cred_obj, {"databaseURL": database_url})
    logger.info("Firebase Admin SDK initialised.")


def _validate(model: type[BaseModel], record_id: str, data: Any) -> Any:
    if not isinstance(data, dict):
        return None
    try:
        return model.model_validate({**data, "id": record_id})
    except ValidationError as exc:
        logger.warning("Skipping invalid %s record %s: %s", model.__name__, record_id, exc)
        return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CatalogDB:
    """Wrapper around the catalog nodes of the Realtime Database."""

    def __init__(self, root: Any | None = None, *, settings: Settings | None = None) -> None:
        if root is None:
            _initialise_app(settings or get_settings())
            root = db.reference("/")
        self._root = root

    # -------------------------------------------------------------------
    # Businesses
    # -------------------------------------------------------------------

    def get_business_by_id(self, business_id: str, include_inactive: bool = False) -> Business | None:
        if not business_id:
            return None
        data = self._root.child("businesses").child(business_id).get()
        business = _validate(Business, business_id, data)
        if business is None or (not business.is_active and not include_inactive):
            return None
        return business

    def set_business(self, business: Business) -> None:
        data = business.model_dump(mode="json", exclude={"id", "slug"})
        self._root.child("businesses").child(business.id).set(data)
        logger.debug("Business set for business_id=%s", business.id)

    def list_active_businesses(self) -> list[Business]:
        return self._active("businesses", Business)

    def get_business_by_slug(self, slug: str) -> Business | None:
        ident = extract_id_from_slug(slug)
        if is_uuid(ident):
            return self.get_business_by_id(ident)
        return next((b for b in self.list_active_businesses() if b.slug == slug), None)

    # -------------------------------------------------------------------
    # Products and services
    # -------------------------------------------------------------------

    def get_product_by_id(self, product_id: str) -> Product | None:
        return self._item_by_id("products", Product, product_id)

    def get_service_by_id(self, service_id: str) -> Service | None:
        return self._item_by_id("services", Service, service_id)

    def get_product_by_slug(self, slug: str) -> Product | None:
        return self._item_by_slug("products", Product, slug)

    def get_service_by_slug(self, slug: str) -> Service | None:
        return self._item_by_slug("services", Service, slug)

    def _item_by_id(self, node: str, model: type[ItemT], item_id: str) -> ItemT | None:
        if not item_id:
            return None
        item = _validate(model, item_id, self._root.child(node).child(item_id).get())
        if item is None or not item.is_active:
            return None
        item.business = self.get_business_by_id(item.business_id)
        return item

    def _item_by_slug(self, node: str, model: type[ItemT], slug: str) -> ItemT | None:
        ident = extract_id_from_slug(slug)
        if is_uuid(ident):
            return self._item_by_id(node, model, ident)

        businesses = {b.id: b for b in self.list_active_businesses()}
        for item in self._active(node, model):
            business = businesses.get(item.business_id)
            # Items are only reachable by name through an active business.
            if business is None:
                continue
            item.business = business
            if item.slug == slug:
                return item
        return None

    def _active(self, node: str, model: type[BaseModel]) -> list[Any]:
        raw_items = self._root.child(node).order_by_child("is_active").equal_to(True).get() or {}
        records = (_validate(model, key, value) for key, value in raw_items.items())
        return [r for r in records if r is not None]

    # -------------------------------------------------------------------
    # WhatsApp contact statistics
    # -------------------------------------------------------------------

    def _stats_ref(self, business_id: str):
        return self._root.child("whatsapp_stats").child(business_id)

    def record_whatsapp_contact(
        self,
        business_id: str,
        product_id: str | None = None,
        service_id: str | None = None,
    ) -> int:
        """Increment the contact counter of a product or service.

        Exactly one of *product_id* / *service_id* must be given. Returns the
        updated count.
        """

        if not business_id:
            raise ValueError("business_id is required")
        if bool(product_id) == bool(service_id):
            raise ValueError("Exactly one of product_id or service_id is required")

        kind, target_id = ("products", product_id) if product_id else ("services", service_id)
        contacted_at = _now_iso()

        def _increment(current: dict[str, Any] | None) -> dict[str, Any]:
            count = (current or {}).get("contact_count", 0)
            return {"contact_count": count + 1, "last_contact_at": contacted_at}

        result = self._stats_ref(business_id).child(kind).child(target_id).transaction(_increment)
        logger.debug("Recorded WhatsApp contact business=%s %s=%s", business_id, kind, target_id)
        return result["contact_count"]

    def get_whatsapp_stats(self, business_id: str) -> WhatsAppStats:
        raw = self._stats_ref(business_id).get() or {}
        products = self._contact_stats("products", raw.get("products"))
        services = self._contact_stats("services", raw.get("services"))
        total = sum(s.contact_count for s in [*products, *services])
        return WhatsAppStats(products=products, services=services, total_contacts=total)

    def _contact_stats(self, node: str, raw: dict[str, Any] | None) -> list[ContactStat]:
        stats = []
        for item_id, data in _items(raw):
            name = self._root.child(node).child(item_id).child("name").get() or ""
            stats.append(
                ContactStat(
                    id=item_id,
                    name=name,
                    contact_count=data.get("contact_count") or 0,
                    last_contact_at=data.get("last_contact_at") or "",
                )
            )
        stats.sort(key=lambda s: s.contact_count, reverse=True)
        return stats


def _items(raw: dict[str, Any] | None) -> Iterable[tuple[str, dict[str, Any]]]:
    for key, value in (raw or {}).items():
        if isinstance(value, dict):
            yield key, value


@lru_cache()
def get_catalog_db() -> CatalogDB:
    return CatalogDB()
