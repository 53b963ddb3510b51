"""
Tests for message templates: placeholder filling, WhatsApp links and the
/api/templates endpoints.
"""
from datetime import datetime, timezone

from conftest import make_checkout

from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.database.repositories.template_repository import TemplateRepository
from cartdesk.services.cart_view import Cart, Customer, LineItem
from cartdesk.services.template_service import fill_template, whatsapp_link

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _cart(name="Maryam", phone="+92 300 1234567", items=("Lawn Suit", "Dupatta")):
    return Cart(
        id="1",
        customer=Customer(id="1", name=name, phone=phone),
        items=[LineItem(name=item, quantity=1, price=10) for item in items],
        abandoned_at=NOW,
        last_contacted=NOW,
    )


def _template_payload(**overrides):
    payload = {
        "type": "whatsapp",
        "name": "Gentle nudge",
        "text": "Hi {name}, your {product} is waiting!",
        "category": "reminder",
    }
    payload.update(overrides)
    return payload


class TestFillTemplate:

    def test_fills_name_and_products(self):
        assert fill_template("Hi {name}, your {product}", _cart()) == "Hi Maryam, your Lawn Suit, Dupatta"

    def test_repeated_placeholders(self):
        assert fill_template("{name} {name}", _cart()) == "Maryam Maryam"

    def test_no_items(self):
        assert fill_template("[{product}]", _cart(items=())) == "[]"

    def test_unknown_placeholders_left_alone(self):
        assert fill_template("{discount}", _cart()) == "{discount}"


class TestWhatsappLink:

    def test_strips_non_digits_and_encodes(self):
        assert whatsapp_link("+92 (300) 123-4567", "Ali", "Hi Ali & co") == "https://wa.me/923001234567?text=Hi%20Ali%20%26%20co"

    def test_default_message(self):
        link = whatsapp_link("0300", "Ali")
        assert link == "https://wa.me/0300?text=Hi%20Ali%2C%20regarding%20your%20abandoned%20cart..."

    def test_no_digits(self):
        assert whatsapp_link("", "Ali") is None
        assert whatsapp_link("n/a", "Ali") is None


# ────────────────────────────────────────────
# ENDPOINTS
# ────────────────────────────────────────────


class TestTemplateRoutes:

    def test_create_and_list(self, client):
        response = client.post("/api/templates", json=_template_payload(isStarred=True))

        assert response.status_code == 201
        created = response.json()
        assert created["is_starred"] is True
        assert created["usage_count"] == 0
        assert [t["id"] for t in client.get("/api/templates").json()] == [created["id"]]

    def test_create_missing_fields(self, client):
        response = client.post("/api/templates", json={"type": "sms", "name": "x"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields"

    def test_update(self, client):
        created = client.post("/api/templates", json=_template_payload()).json()

        updated = client.put("/api/templates", json={"id": created["id"], "name": "Firm nudge", "usageCount": 4}).json()

        assert updated["name"] == "Firm nudge"
        assert updated["usage_count"] == 4
        assert updated["text"] == created["text"]

    def test_update_unknown(self, client):
        assert client.put("/api/templates", json={"id": 42, "name": "x"}).status_code == 404

    def test_update_requires_id(self, client):
        assert client.put("/api/templates", json={"name": "x"}).status_code == 400

    def test_delete(self, client, db_session):
        created = client.post("/api/templates", json=_template_payload()).json()

        response = client.request("DELETE", "/api/templates", json={"id": created["id"]})

        assert response.status_code == 204
        assert TemplateRepository(db_session).list_all() == []

    def test_delete_unknown(self, client):
        assert client.request("DELETE", "/api/templates", json={"id": 42}).status_code == 404

    def test_fill_for_stored_cart(self, client, db_session):
        CheckoutRepository(db_session).upsert_many([
            make_checkout(
                1,
                customer={"first_name": "Sana", "phone": "+92 321 7654321"},
                line_items=[{"title": "Khussa", "quantity": 1, "price": "30"}],
            ),
        ])
        template = client.post("/api/templates", json=_template_payload()).json()

        body = client.post(f"/api/templates/{template['id']}/fill", json={"cart_id": "1"}).json()

        assert body["text"] == "Hi Sana, your Khussa is waiting!"
        assert body["whatsapp_link"].startswith("https://wa.me/923217654321?text=Hi%20Sana")
        assert body["cart_id"] == "1"
        assert TemplateRepository(db_session).get(template["id"]).usage_count == 1

    def test_fill_email_template_has_no_link(self, client, db_session):
        CheckoutRepository(db_session).upsert_many([make_checkout(1, phone="0300")])
        template = client.post("/api/templates", json=_template_payload(type="email")).json()

        body = client.post(f"/api/templates/{template['id']}/fill", json={"cart_id": "1"}).json()

        assert body["whatsapp_link"] is None

    def test_fill_unknown_cart(self, client):
        template = client.post("/api/templates", json=_template_payload()).json()
        response = client.post(f"/api/templates/{template['id']}/fill", json={"cart_id": "nope"})
        assert response.status_code == 404
