"""
Bundles Router
Lists bundles created through the wizard and their platform components
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
import logging

from routers.dependencies import PlatformFactory, get_platform_factory, get_store
from services.shopify_admin import ShopifyAdminError
from services.wizard_store import WizardStore
from settings import resolve_shop_id

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/bundles")
async def get_bundles(
    shop_id: Optional[str] = Query(None, alias="shopId"),
    limit: int = Query(50, ge=1, le=200),
    store: WizardStore = Depends(get_store),
):
    """Get bundles created for a shop, newest first"""
    bundles = await store.list_bundles(shop_id, limit=limit)
    return {
        "shopId": resolve_shop_id(shop_id),
        "totalBundles": len(bundles),
        "bundles": [
            {
                "id": bundle.id,
                "title": bundle.title,
                "definition": bundle.definition,
                "createSectionBlock": bundle.create_section_block,
                "discountType": bundle.discount_type,
                "discountValue": bundle.discount_value,
                "startDate": bundle.start_date.isoformat() if bundle.start_date else None,
                "endDate": bundle.end_date.isoformat() if bundle.end_date else None,
                "description": bundle.description,
                "operationId": bundle.operation_id,
                "operationStatus": bundle.operation_status,
                "createdAt": bundle.created_at.isoformat() if bundle.created_at else None,
            }
            for bundle in bundles
        ],
    }


@router.get("/bundles/components")
async def get_bundle_components(
    product_id: str = Query(..., alias="productId", min_length=1),
    shop_id: Optional[str] = Query(None, alias="shopId"),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
):
    """Get the component products of a bundle product"""
    client = platform_factory(resolve_shop_id(shop_id))
    try:
        components = await client.fetch_product_components(product_id)
    except ShopifyAdminError as e:
        logger.error(f"Error fetching components for {product_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch bundle components")
    return {"productId": product_id, "components": components}
