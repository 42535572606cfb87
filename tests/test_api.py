"""
HTTP-level tests for the wizard, bundles and cart transform routers.
"""
import json
import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from database import ProductBundle
from main import app
from routers.dependencies import get_notifier, get_platform_factory, get_store
from services.bundle_wizard import WizardState
from settings import DEFAULT_SHOP_ID, resolve_shop_id

from conftest import FakePlatform, RecordingNotifier

SIMPLE_CATALOG = [
    {
        "id": "p1",
        "title": "Premium Shirt",
        "vendor": "Acme",
        "images": [],
        "options": [{"id": "o1", "name": "Color", "values": ["Red", "Blue"]}],
    },
    {
        "id": "p2",
        "title": "Clearance Hat",
        "vendor": "Acme",
        "images": [],
        "options": [{"id": "o2", "name": "Size", "values": ["One size"]}],
    },
]


class InMemoryStore:
    """Dict-backed replacement for WizardStore."""

    def __init__(self):
        self.sessions = {}
        self.bundles = []

    async def create_session(self, shop_id, state=None):
        state = state or WizardState()
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = (resolve_shop_id(shop_id), state.to_dict())
        return session_id, state

    async def load_session(self, session_id):
        if session_id not in self.sessions:
            return None
        shop_id, data = self.sessions[session_id]
        return shop_id, WizardState.from_dict(data)

    async def save_session(self, session_id, state):
        if session_id not in self.sessions:
            return False
        self.sessions[session_id] = (self.sessions[session_id][0], state.to_dict())
        return True

    async def delete_session(self, session_id):
        return self.sessions.pop(session_id, None) is not None

    async def record_bundle(self, shop_id, definition, draft, operation=None):
        bundle = ProductBundle(
            id=str(uuid.uuid4()),
            shop_id=resolve_shop_id(shop_id),
            title=definition.title,
            definition=definition.to_dict(),
            create_section_block=draft.create_section_block,
            discount_type=draft.discount_type.value,
            discount_value=draft.discount_value.strip(),
            start_date=draft.start_date,
            end_date=draft.end_date,
            description=draft.description,
            operation_id=operation.id if operation else None,
            operation_status=operation.status if operation else None,
            created_at=datetime.utcnow(),
        )
        self.bundles.append(bundle)
        return bundle

    async def list_bundles(self, shop_id, limit=50):
        return [b for b in self.bundles if b.shop_id == resolve_shop_id(shop_id)][:limit]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_platform():
    return FakePlatform(catalog=SIMPLE_CATALOG)


@pytest.fixture
def platform_shops():
    return []


@pytest.fixture
def client(store, fake_platform, notifier, platform_shops):
    def platform_for(shop_id):
        platform_shops.append(shop_id)
        return fake_platform

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_platform_factory] = lambda: platform_for
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def start(client):
    response = client.post("/api/wizard", json={"shopId": "Test-Shop"})
    assert response.status_code == 200
    return response.json()["sessionId"]


def advance_to_last_step(client, session_id):
    client.patch(f"/api/wizard/{session_id}/fields", json={"field": "bundleName", "value": "Summer Kit"})
    client.post(f"/api/wizard/{session_id}/next")
    client.post(f"/api/wizard/{session_id}/products", json={"productIds": ["p1", "p2"]})
    client.post(f"/api/wizard/{session_id}/next")
    client.patch(f"/api/wizard/{session_id}/fields", json={"field": "discountValue", "value": "15"})
    client.post(f"/api/wizard/{session_id}/next")
    return client.patch(f"/api/wizard/{session_id}/fields", json={"field": "description", "value": "Sunny days"})


class TestWizardFlow:
    def test_start(self, client, store):
        session_id = start(client)
        payload = client.get(f"/api/wizard/{session_id}").json()

        assert payload["step"] == 1
        assert payload["stepName"] == "name"
        assert payload["progress"] == 25
        assert payload["isLastStep"] is False
        assert payload["draft"]["bundle_name"] == ""
        assert store.sessions[session_id][0] == "test-shop"

    def test_start_and_reload_use_the_same_shop(self, client, platform_shops):
        session_id = start(client)
        client.get(f"/api/wizard/{session_id}")
        assert platform_shops == ["test-shop", "test-shop"]

    def test_start_without_shop_uses_default(self, client, store, platform_shops):
        response = client.post("/api/wizard", json={})
        session_id = response.json()["sessionId"]
        client.get(f"/api/wizard/{session_id}")
        assert platform_shops == [DEFAULT_SHOP_ID, DEFAULT_SHOP_ID]
        assert store.sessions[session_id][0] == DEFAULT_SHOP_ID

    def test_blocked_next_returns_visible_errors(self, client):
        session_id = start(client)
        payload = client.post(f"/api/wizard/{session_id}/next").json()

        assert payload["step"] == 1
        assert payload["errorsVisible"] is True
        assert payload["errors"]["bundle_name"] == {"code": "MissingName", "message": "Bundle name is required"}

    def test_full_flow_creates_bundle(self, client, fake_platform, notifier):
        session_id = start(client)
        payload = advance_to_last_step(client, session_id).json()
        assert payload["step"] == 4
        assert payload["isLastStep"] is True
        assert payload["progress"] == 100

        response = client.post(f"/api/wizard/{session_id}/submit")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["bundleOperation"]["status"] == "CREATED"
        assert body["definition"]["title"] == "Summer Kit"
        assert [c["productId"] for c in body["definition"]["components"]] == ["p1", "p2"]
        assert body["state"]["step"] == 1
        assert body["state"]["draft"]["products"] == []
        assert len(fake_platform.created) == 1
        assert len(notifier.events) == 1

        bundles = client.get("/api/bundles", params={"shopId": "test-shop"}).json()
        assert bundles["totalBundles"] == 1
        assert bundles["bundles"][0]["id"] == body["bundleId"]
        assert bundles["bundles"][0]["discountValue"] == "15"

    def test_option_toggle_and_quantity(self, client):
        session_id = start(client)
        client.post(f"/api/wizard/{session_id}/products", json={"productIds": ["p1", "p2"]})

        payload = client.post(
            f"/api/wizard/{session_id}/products/p2/options/o2/toggle", json={"value": "One size"}
        ).json()
        assert payload["optionErrors"] == {
            "p2": {"o2": {"code": "NoOptionValueSelected", "message": "At least one Size must be selected"}}
        }
        assert payload["errors"]["products"]["code"] == "NoOptionValueSelected"

        payload = client.put(f"/api/wizard/{session_id}/products/p1/quantity", json={"quantity": "0"}).json()
        assert payload["draft"]["products"][0]["quantity"] == 1

        payload = client.delete(f"/api/wizard/{session_id}/products/p2").json()
        assert [p["id"] for p in payload["draft"]["products"]] == ["p1"]
        assert payload["optionErrors"] == {}
        assert "products" not in payload["errors"]

    def test_previous(self, client):
        session_id = start(client)
        client.patch(f"/api/wizard/{session_id}/fields", json={"field": "bundleName", "value": "Kit"})
        client.post(f"/api/wizard/{session_id}/next")
        assert client.post(f"/api/wizard/{session_id}/previous").json()["step"] == 1

    def test_end_session(self, client, store):
        session_id = start(client)
        assert client.delete(f"/api/wizard/{session_id}").json() == {"success": True}
        assert session_id not in store.sessions


class TestWizardErrors:
    def test_unknown_session(self, client):
        response = client.get("/api/wizard/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Wizard session not found"}

    def test_unknown_field(self, client):
        session_id = start(client)
        response = client.patch(f"/api/wizard/{session_id}/fields", json={"field": "price", "value": 1})
        assert response.status_code == 400
        assert "price" in response.json()["error"]

    def test_invalid_date(self, client):
        session_id = start(client)
        response = client.patch(f"/api/wizard/{session_id}/fields", json={"field": "startDate", "value": "soon"})
        assert response.status_code == 400

    def test_request_validation(self, client):
        session_id = start(client)
        response = client.post(f"/api/wizard/{session_id}/products", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "Validation failed"

    def test_next_on_last_step_conflicts(self, client):
        session_id = start(client)
        advance_to_last_step(client, session_id)
        response = client.post(f"/api/wizard/{session_id}/next")
        assert response.status_code == 409

    def test_submit_before_last_step_conflicts(self, client):
        session_id = start(client)
        assert client.post(f"/api/wizard/{session_id}/submit").status_code == 409

    def test_unknown_product(self, client):
        session_id = start(client)
        response = client.delete(f"/api/wizard/{session_id}/products/p404")
        assert response.status_code == 404

    def test_platform_rejection_keeps_draft(self, client, fake_platform, store):
        fake_platform.user_error = "Title has already been taken"
        session_id = start(client)
        advance_to_last_step(client, session_id)

        response = client.post(f"/api/wizard/{session_id}/submit")

        assert response.status_code == 400
        body = response.json()
        assert body == {"success": False, "error": "Title has already been taken", "state": body["state"]}
        assert body["state"]["step"] == 4
        assert body["state"]["draft"]["bundle_name"] == "Summer Kit"
        assert store.bundles == []

    def test_submit_validation_failure(self, client, fake_platform):
        session_id = start(client)
        advance_to_last_step(client, session_id)
        client.patch(f"/api/wizard/{session_id}/fields", json={"field": "description", "value": "  "})

        response = client.post(f"/api/wizard/{session_id}/submit")

        assert response.status_code == 400
        assert response.json()["error"] == "Description is required"
        assert fake_platform.created == []

    def test_catalog_failure(self, client, fake_platform):
        fake_platform.catalog_error = True
        session_id = start(client)
        response = client.post(f"/api/wizard/{session_id}/products", json={"productIds": ["p1"]})
        assert response.status_code == 502
        assert response.json()["state"]["draft"]["products"] == []


class TestBundlesAndCartTransform:
    def test_components(self, client, fake_platform):
        fake_platform.components = [{"id": "p1", "title": "Premium Shirt"}]
        response = client.get("/api/bundles/components", params={"productId": "gid://shopify/Product/50"})
        assert response.status_code == 200
        assert response.json() == {"productId": "gid://shopify/Product/50", "components": [{"id": "p1", "title": "Premium Shirt"}]}

    def test_cart_transform(self, client):
        refs = ["gid://shopify/ProductVariant/1", "gid://shopify/ProductVariant/2"]
        cart = {"cart": {"lines": [{
            "id": "gid://shopify/CartLine/1",
            "merchandise": {"__typename": "ProductVariant", "component_reference": {"value": json.dumps(refs)}},
        }]}}

        response = client.post("/api/cart-transform/run", json=cart)

        assert response.status_code == 200
        (operation,) = response.json()["operations"]
        assert operation["type"] == "expand"
        assert [i["merchandise_id"] for i in operation["expanded_cart_items"]] == refs

    def test_malformed_reference(self, client):
        cart = {"cart": {"lines": [{
            "id": "l1",
            "merchandise": {"__typename": "ProductVariant", "component_reference": {"value": "{oops"}},
        }]}}
        response = client.post("/api/cart-transform/run", json=cart)
        assert response.status_code == 422
        assert "component_reference" in response.json()["error"]

    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"ok": True}

    def test_pool_endpoint_is_gone(self, client):
        assert client.get("/api/health/pool").status_code == 404
