from __future__ import annotations

from pydantic import BaseModel, Field


class ContactLink(BaseModel):
    """A ready-to-open wa.me link plus the message it carries."""

    url: str
    phone: str
    message: str


class ContactStat(BaseModel):
    id: str
    name: str = ""
    contact_count: int = Field(0, ge=0)
    last_contact_at: str = ""


class WhatsAppStats(BaseModel):
    products: list[ContactStat] = []
    services: list[ContactStat] = []
    total_contacts: int = 0
