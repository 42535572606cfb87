"""
Shared FastAPI dependencies.
Overridden in tests through app.dependency_overrides.
"""
from typing import Callable

from services.notifications import LoggingNotifier, Notifier
from services.shopify_admin import ShopifyAdminClient
from services.wizard_store import WizardStore, wizard_store

PlatformFactory = Callable[[str], ShopifyAdminClient]

_notifier = LoggingNotifier()


def get_store() -> WizardStore:
    return wizard_store


def get_platform_factory() -> PlatformFactory:
    """Admin client per shop; the token comes from SHOPIFY_ADMIN_ACCESS_TOKEN."""
    return lambda shop_id: ShopifyAdminClient(shop_id)


def get_notifier() -> Notifier:
    return _notifier
