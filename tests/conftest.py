import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from schemas.bundle_schemas import (  # noqa: E402
    BundleDefinition,
    BundleDraft,
    BundleOperation,
    OptionSelection,
    OptionValue,
    ProductSelection,
)
from services.shopify_admin import BundleCreationError, CatalogLookupError  # noqa: E402


def make_option(option_id, name, values, selected=None):
    """Option with every value selected unless ``selected`` lists the chosen ones."""
    return OptionSelection(
        id=option_id,
        name=name,
        values=tuple(
            OptionValue(v, True if selected is None else v in selected) for v in values
        ),
    )


def make_product(product_id, title="Product", quantity=1, options=()):
    return ProductSelection(id=product_id, title=title, quantity=quantity, options=tuple(options))


SHIRT = make_product(
    "gid://shopify/Product/1",
    title="Premium Shirt",
    quantity=2,
    options=[
        make_option("gid://shopify/ProductOption/11", "Color", ["Red", "Blue", "Green"], selected=["Red", "Blue"]),
        make_option("gid://shopify/ProductOption/12", "Size", ["S", "M"]),
    ],
)
HAT = make_product(
    "gid://shopify/Product/2",
    title="Clearance Hat",
    options=[make_option("gid://shopify/ProductOption/21", "Size", ["One size"])],
)

CATALOG_PRODUCTS = [
    {
        "id": "gid://shopify/Product/1",
        "title": "Premium Shirt",
        "vendor": "Acme",
        "images": [{"original_src": "https://cdn.example.com/shirt.png", "alt_text": "Shirt"}],
        "options": [
            {"id": "gid://shopify/ProductOption/11", "name": "Color", "values": ["Red", "Blue", "Green"]},
            {"id": "gid://shopify/ProductOption/12", "name": "Size", "values": ["S", "M"]},
        ],
    },
    {
        "id": "gid://shopify/Product/2",
        "title": "Clearance Hat",
        "vendor": "Acme",
        "images": [],
        "options": [{"id": "gid://shopify/ProductOption/21", "name": "Size", "values": ["One size"]}],
    },
]


def complete_draft(**overrides):
    """A draft that passes every step validator."""
    values = dict(
        bundle_name="  Summer Kit ",
        products=(SHIRT, HAT),
        discount_value="10",
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        description="Everything you need for summer",
    )
    values.update(overrides)
    return BundleDraft(**values)


class FakePlatform:
    """In-memory stand-in for the Admin API client."""

    def __init__(self, user_error=None, catalog=None, catalog_error=False, components=None):
        self.user_error = user_error
        self.catalog = catalog if catalog is not None else CATALOG_PRODUCTS
        self.catalog_error = catalog_error
        self.components = components or []
        self.created = []
        self.lookups = []

    async def create_bundle(self, definition: BundleDefinition) -> BundleOperation:
        self.created.append(definition)
        if self.user_error:
            raise BundleCreationError(self.user_error, [{"field": ["input"], "message": self.user_error}])
        return BundleOperation(id="gid://shopify/ProductBundleOperation/1", status="CREATED")

    async def fetch_products(self, product_ids):
        self.lookups.append(list(product_ids))
        if self.catalog_error:
            raise CatalogLookupError("Shopify Admin API returned HTTP 503")
        by_id = {p["id"]: p for p in self.catalog}
        return [by_id[pid] for pid in product_ids if pid in by_id]

    async def fetch_product_components(self, product_id):
        return self.components


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.events = []

    async def notify_bundle_created(self, definition, operation, details=None):
        self.events.append((definition, operation))
        if self.fail:
            raise RuntimeError("notification channel down")


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def notifier():
    return RecordingNotifier()
