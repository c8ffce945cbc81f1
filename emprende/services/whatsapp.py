"""WhatsApp click-to-chat links for marketplace listings.

Visitors contact businesses through ``https://wa.me/{number}?text=...``
links. The messages follow the marketplace's Spanish templates and carry the
listing URL so the business knows what the visitor is asking about.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from urllib.parse import quote

from emprende.config import get_settings
from emprende.models import Business, ContactLink, Product, Service

logger = logging.getLogger(__name__)

WA_ME_URL = "https://wa.me"
PRICE_ON_REQUEST = "Precio a consultar"
DESCRIPTION_PREVIEW_CHARS = 100

_NON_DIGITS_RE = re.compile(r"[^0-9]")
_SEPARATOR = "━" * 28
_CURRENCY_SYMBOLS = {"CRC": "₡", "USD": "$", "EUR": "€"}
# encodeURIComponent leaves these unescaped on top of quote()'s defaults.
_URI_COMPONENT_SAFE = "!*'()"
# es-CR groups digits with a no-break space, as Intl.NumberFormat does.
_GROUP_SEPARATOR = "\u00a0"


class WhatsAppLinkError(Exception):
    """Raised when a contact link cannot be built, e.g. no WhatsApp number."""


def normalize_phone(number: str | None) -> str:
    return _NON_DIGITS_RE.sub("", number or "")


def format_price(price: float | None, currency: str = "CRC") -> str:
    """Format *price* the way es-CR renders currency, e.g. ``₡1 500``.

    Digit groups are joined with a no-break space.
    """

    if not price:
        return PRICE_ON_REQUEST

    amount = f"{price:,.2f}".rstrip("0").rstrip(".")
    integer, _, fraction = amount.partition(".")
    integer = integer.replace(",", _GROUP_SEPARATOR)
    text = f"{integer},{fraction}" if fraction else integer
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    return f"{symbol}{text}" if symbol else f"{text}{_GROUP_SEPARATOR}{currency.upper()}"


def format_consultation_time(moment: datetime) -> str:
    suffix = "a. m." if moment.hour < 12 else "p. m."
    return f"{moment:%d/%m/%Y}, {moment:%I:%M} {suffix}"


def build_whatsapp_url(number: str | None, message: str) -> str:
    phone = normalize_phone(number)
    if not phone:
        raise WhatsAppLinkError("The business has no WhatsApp number")
    return f"{WA_ME_URL}/{phone}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"


def _listing_url(kind: str, slug: str | None, site_url: str) -> str:
    site_url = site_url.rstrip("/")
    return f"{site_url}/{kind}/{slug}" if slug else site_url


# ------------------------------------------------------------------
# Message templates
# ------------------------------------------------------------------


def build_product_message(product: Product, *, site_url: str, now: datetime) -> str:
    return (
        "🌟 *¡Hola! Estoy interesado/a en este producto* 🌟\n\n"
        f"📦 *Producto:* {product.name}\n"
        f"💰 *Precio:* {format_price(product.price, product.currency)}\n\n"
        f"{_SEPARATOR}\n\n"
        "🔗 *Ver detalles completos:*\n"
        f"{_listing_url('products', product.slug, site_url)}\n\n"
        f"📅 *Fecha de consulta:* {format_consultation_time(now)}\n\n"
        "¡Espero tu respuesta! 😊"
    )


def build_service_message(service: Service, *, site_url: str, now: datetime) -> str:
    message = " *¡Hola! Me interesa este servicio* \n\n"
    if service.image_url:
        # WhatsApp renders a preview for the first URL in the text.
        message += f"{service.image_url}\n\n"
    return message + (
        f"🛠️ *Servicio:* {service.name}\n"
        f"💰 *Precio:* {format_price(service.price, service.currency)}\n\n"
        f"{_SEPARATOR}\n\n"
        "🔗 *Ver información completa:*\n"
        f"{_listing_url('services', service.slug, site_url)}\n\n"
        f"📅 *Fecha de consulta:* {format_consultation_time(now)}\n\n"
        "¡Espero poder coordinar! 🤝"
    )


def build_business_message(business: Business, *, site_url: str, now: datetime) -> str:
    description = ""
    if business.description:
        preview = business.description[:DESCRIPTION_PREVIEW_CHARS]
        if len(business.description) > DESCRIPTION_PREVIEW_CHARS:
            preview += "..."
        description = f"📝 *Descripción:* {preview}\n"

    return (
        "🌟 *¡Hola! Me interesa conocer más sobre su emprendimiento* 🌟\n\n"
        f"🏢 *Emprendimiento:* {business.name}\n"
        f"{description}\n"
        f"{_SEPARATOR}\n\n"
        "🔗 *Ver perfil completo:*\n"
        f"{_listing_url('businesses', business.slug, site_url)}\n\n"
        f"📅 *Fecha de consulta:* {format_consultation_time(now)}\n\n"
        "¡Me gustaría conocer más sobre sus productos y servicios! 😊"
    )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def contact_link(listing: Business | Product | Service, *, now: datetime | None = None) -> ContactLink:
    """Build the WhatsApp link for a business, product or service.

    Products and services are contacted through their business' number, so
    they must have ``business`` attached.
    """

    settings = get_settings()
    now = now or datetime.now()

    if isinstance(listing, Business):
        number = listing.whatsapp
        message = build_business_message(listing, site_url=settings.site_url, now=now)
    else:
        number = listing.business.whatsapp if listing.business else None
        builder = build_product_message if isinstance(listing, Product) else build_service_message
        message = builder(listing, site_url=settings.site_url, now=now)

    url = build_whatsapp_url(number, message)
    logger.debug("Built WhatsApp link for %s %s", type(listing).__name__, listing.id)
    return ContactLink(url=url, phone=normalize_phone(number), message=message)
