from __future__ import annotations

from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest

from emprende.config import Settings
from emprende.models import Business, Product, Service
from emprende.services import whatsapp

NOW = datetime(2026, 10, 18, 15, 5)


@pytest.fixture(autouse=True)
def _site_url(monkeypatch):
    monkeypatch.setattr(whatsapp, "get_settings", lambda: Settings(_env_file=None, site_url="https://emprende.example.cr/"))


@pytest.fixture
def business() -> Business:
    return Business(
        id="biz-1",
        name="Café Tico",
        description="Tostamos café de Tarrazú " * 10,
        whatsapp="+506 8888-7777",
    )


@pytest.mark.parametrize(
    ("number", "expected"),
    [("+506 8888-7777", "50688887777"), ("(506) 2222 3333", "50622223333"), (None, ""), ("n/a", "")],
)
def test_normalize_phone(number, expected):
    assert whatsapp.normalize_phone(number) == expected


@pytest.mark.parametrize(
    ("price", "currency", "expected"),
    [
        (None, "CRC", "Precio a consultar"),
        (0, "CRC", "Precio a consultar"),
        (1500, "CRC", "₡1\u00a0500"),
        (2500000, "crc", "₡2\u00a0500\u00a0000"),
        (1500.5, "CRC", "₡1\u00a0500,5"),
        (12.25, "USD", "$12,25"),
        (990, "MXN", "990\u00a0MXN"),
    ],
)
def test_format_price(price, currency, expected):
    assert whatsapp.format_price(price, currency) == expected


def test_format_consultation_time():
    assert whatsapp.format_consultation_time(NOW) == "18/10/2026, 03:05 p. m."
    assert whatsapp.format_consultation_time(datetime(2026, 1, 2, 9, 30)) == "02/01/2026, 09:30 a. m."


def test_build_whatsapp_url_escapes_like_encode_uri_component():
    url = whatsapp.build_whatsapp_url("+506 8888-7777", "¡Hola! (precio) 50% *ya*\nok")

    assert url == (
        "https://wa.me/50688887777?text="
        "%C2%A1Hola!%20(precio)%2050%25%20*ya*%0Aok"
    )


@pytest.mark.parametrize("number", [None, "", "sin número"])
def test_build_whatsapp_url_requires_number(number):
    with pytest.raises(whatsapp.WhatsAppLinkError):
        whatsapp.build_whatsapp_url(number, "Hola")


def test_product_contact_link(business):
    product = Product(id="p-1", business_id="biz-1", name="Bolsa 500g", price=6500, business=business)

    link = whatsapp.contact_link(product, now=NOW)

    assert link.phone == "50688887777"
    assert "📦 *Producto:* Bolsa 500g" in link.message
    assert "💰 *Precio:* ₡6\u00a0500" in link.message
    assert "https://emprende.example.cr/products/cafe-tico-bolsa-500g" in link.message
    assert "📅 *Fecha de consulta:* 18/10/2026, 03:05 p. m." in link.message
    text = parse_qs(urlparse(link.url).query)["text"][0]
    assert text == link.message


def test_service_contact_link_includes_image(business):
    service = Service(
        id="s-1",
        business_id="biz-1",
        name="Cata guiada",
        image_url="https://cdn.example.cr/cata.webp",
        business=business,
    )

    message = whatsapp.contact_link(service, now=NOW).message

    assert message.startswith(" *¡Hola! Me interesa este servicio* \n\nhttps://cdn.example.cr/cata.webp\n\n")
    assert "Precio a consultar" in message
    assert "https://emprende.example.cr/services/cafe-tico-cata-guiada" in message


def test_business_contact_link_truncates_description(business):
    message = whatsapp.contact_link(business, now=NOW).message

    preview = business.description[:100] + "..."
    assert f"📝 *Descripción:* {preview}\n" in message
    assert "https://emprende.example.cr/businesses/cafe-tico" in message


def test_business_short_description_is_not_truncated():
    business = Business(id="biz-2", name="Soda", whatsapp="50611112222", description="Corta")

    message = whatsapp.build_business_message(business, site_url="https://x.cr", now=NOW)

    assert "📝 *Descripción:* Corta\n\n" in message
    assert "..." not in message


def test_item_without_business_has_no_number():
    product = Product(id="p-2", business_id="gone", name="Huérfano")

    with pytest.raises(whatsapp.WhatsAppLinkError):
        whatsapp.contact_link(product, now=NOW)


def test_listing_url_falls_back_to_site_when_slug_missing():
    product = Product(id="", business_id="b", name="")

    message = whatsapp.build_product_message(product, site_url="https://x.cr", now=NOW)

    assert "🔗 *Ver detalles completos:*\nhttps://x.cr\n" in message
