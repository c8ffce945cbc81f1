from __future__ import annotations

import copy
import io
from typing import Any

import pytest
from PIL import Image

from emprende.services import catalog_db, image_processing, storage

BUSINESS_ID = "3f2b8c1e-9a4d-4c7e-8b1a-2d5e6f7a8b9c"
PRODUCT_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
SERVICE_ID = "b2c3d4e5-f6a7-4b8c-9d0e-1f2a3b4c5d6e"


def make_image(width: int, height: int, *, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    color = (200, 80, 40, 128) if mode == "RGBA" else (200, 80, 40)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color[: len(mode)]).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeQuery:
    def __init__(self, ref: "FakeReference", key: str) -> None:
        self._ref = ref
        self._key = key
        self._value: Any = None

    def equal_to(self, value: Any) -> "FakeQuery":
        self._value = value
        return self

    def get(self) -> dict[str, Any]:
        data = self._ref.get() or {}
        return {k: v for k, v in data.items() if isinstance(v, dict) and v.get(self._key) == self._value}


class FakeReference:
    """In-memory stand-in for ``firebase_admin.db.Reference``."""

    def __init__(self, store: dict[str, Any], path: tuple[str, ...] = ()) -> None:
        self.store = store
        self._path = path

    def child(self, key: str) -> "FakeReference":
        return FakeReference(self.store, self._path + (key,))

    def get(self) -> Any:
        node: Any = self.store
        for key in self._path:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return copy.deepcopy(node)

    def set(self, value: Any) -> None:
        node = self.store
        for key in self._path[:-1]:
            node = node.setdefault(key, {})
        node[self._path[-1]] = copy.deepcopy(value)

    def transaction(self, update):
        value = update(self.get())
        self.set(value)
        return value

    def order_by_child(self, key: str) -> FakeQuery:
        return FakeQuery(self, key)


@pytest.fixture(autouse=True)
def _clear_caches():
    yield
    storage.get_storage_service.cache_clear()
    catalog_db.get_catalog_db.cache_clear()
    image_processing.get_backend.cache_clear()


@pytest.fixture
def catalog_store() -> dict[str, Any]:
    return {
        "businesses": {
            BUSINESS_ID: {
                "name": "Café Tico",
                "description": "Café de altura tostado artesanalmente en Tarrazú.",
                "whatsapp": "+506 8888-7777",
                "is_active": True,
            },
            "biz-quiet": {"name": "Panadería La Espiga", "is_active": True},
            "biz-closed": {"name": "Cerrado", "whatsapp": "+506 2222-3333", "is_active": False},
            "biz-emoji": {"name": "☕☕", "whatsapp": "50670000000", "is_active": True},
        },
        "products": {
            PRODUCT_ID: {
                "business_id": BUSINESS_ID,
                "name": "Bolsa 500g",
                "price": 6500,
                "currency": "CRC",
                "is_active": True,
            },
            "prod-closed": {"business_id": "biz-closed", "name": "Pan", "is_active": True},
            "prod-quiet": {"business_id": "biz-quiet", "name": "Baguette", "is_active": True},
            "prod-hidden": {"business_id": BUSINESS_ID, "name": "Bolsa 1kg", "is_active": False},
        },
        "services": {
            SERVICE_ID: {
                "business_id": BUSINESS_ID,
                "name": "Cata guiada",
                "image_url": "https://cdn.example.cr/cata.webp",
                "is_active": True,
            },
        },
    }


@pytest.fixture
def fake_root(catalog_store) -> FakeReference:
    return FakeReference(catalog_store)


@pytest.fixture
def catalog(fake_root) -> catalog_db.CatalogDB:
    return catalog_db.CatalogDB(root=fake_root)
