from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from emprende.utils.slug import (
    generate_business_slug,
    generate_product_slug,
    generate_service_slug,
)


class Business(BaseModel):
    id: str
    name: str = ""
    description: str | None = None
    whatsapp: str | None = None
    logo_url: str | None = None
    category_id: str | None = None
    user_id: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slug(self) -> str:
        return generate_business_slug(self.name, self.id)


class _CatalogItem(BaseModel):
    id: str
    business_id: str
    name: str = ""
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    currency: str = "CRC"
    image_url: str | None = None
    category_id: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    business: Business | None = None  # attached on lookup, never stored


class Product(_CatalogItem):
    """A product listed by a business."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slug(self) -> str:
        business_name = self.business.name if self.business else None
        return generate_product_slug(business_name, self.name, self.id)


class Service(_CatalogItem):
    """A service offered by a business."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slug(self) -> str:
        business_name = self.business.name if self.business else None
        return generate_service_slug(business_name, self.name, self.id)
