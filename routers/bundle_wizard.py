"""
Bundle Wizard Router
Drives wizard sessions: field edits, product picking, step transitions and submission.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import JSONResponse

from routers.dependencies import PlatformFactory, get_notifier, get_platform_factory, get_store
from schemas.bundle_schemas import WizardStep
from services.bundle_wizard import BundleWizard, ProductNotInDraftError, WizardTransitionError
from services.notifications import Notifier
from services.wizard_store import WizardStore
from settings import resolve_shop_id

logger = logging.getLogger(__name__)

router = APIRouter()

# camelCase names sent by the embedded app -> draft field names
FIELD_ALIASES = {
    "bundleName": "bundle_name",
    "createSectionBlock": "create_section_block",
    "discountType": "discount_type",
    "discountValue": "discount_value",
    "startDate": "start_date",
    "endDate": "end_date",
}


class StartWizardRequest(BaseModel):
    shop_id: Optional[str] = Field(None, alias="shopId", max_length=255)

    model_config = ConfigDict(populate_by_name=True)


class UpdateFieldRequest(BaseModel):
    name: str = Field(..., alias="field", min_length=1, max_length=64)
    value: Any = None

    model_config = ConfigDict(populate_by_name=True)


class PickProductsRequest(BaseModel):
    product_ids: List[str] = Field(..., alias="productIds")

    model_config = ConfigDict(populate_by_name=True)


class ToggleOptionValueRequest(BaseModel):
    value: str


class QuantityRequest(BaseModel):
    quantity: Any = 1


def _state_payload(session_id: str, wizard: BundleWizard) -> Dict[str, Any]:
    state = wizard.state
    total_steps = len(WizardStep)
    return {
        "sessionId": session_id,
        "step": int(state.step),
        "stepName": state.step.name.lower(),
        "totalSteps": total_steps,
        "progress": round(int(state.step) / total_steps * 100),
        "isLastStep": wizard.is_last_step,
        "draft": state.draft.to_dict(),
        "errors": {key: error.to_dict() for key, error in state.errors.items()},
        "errorsVisible": state.errors_visible,
        "optionErrors": {
            product_id: {option_id: error.to_dict() for option_id, error in options.items()}
            for product_id, options in wizard.option_errors.items()
        },
    }


async def _load_wizard(
    session_id: str,
    store: WizardStore,
    platform_factory: PlatformFactory,
    notifier: Notifier,
) -> Tuple[str, BundleWizard]:
    loaded = await store.load_session(session_id)
    if loaded is None:
        raise HTTPException(status_code=404, detail="Wizard session not found")
    shop_id, state = loaded
    return shop_id, BundleWizard(platform_factory(shop_id), notifier=notifier, state=state)


@router.post("/wizard")
async def start_wizard(
    request: StartWizardRequest,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    """Start a new bundle wizard session"""
    session_id, state = await store.create_session(request.shop_id)
    wizard = BundleWizard(platform_factory(resolve_shop_id(request.shop_id)), notifier=notifier, state=state)
    return _state_payload(session_id, wizard)


@router.get("/wizard/{session_id}")
async def get_wizard(
    session_id: str,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    return _state_payload(session_id, wizard)


@router.delete("/wizard/{session_id}")
async def end_wizard(session_id: str, store: WizardStore = Depends(get_store)):
    """End a session and discard its draft"""
    if not await store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Wizard session not found")
    return {"success": True}


@router.patch("/wizard/{session_id}/fields")
async def update_field(
    session_id: str,
    request: UpdateFieldRequest,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    field_name = FIELD_ALIASES.get(request.name, request.name)
    try:
        wizard.set_field(field_name, request.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.post("/wizard/{session_id}/products")
async def pick_products(
    session_id: str,
    request: PickProductsRequest,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    """Select catalog products (looked up on the platform)"""
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    if not await wizard.pick_products(wizard.platform, request.product_ids):
        return JSONResponse(
            status_code=502,
            content={"error": "Product lookup failed; please retry", "state": _state_payload(session_id, wizard)},
        )
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.post("/wizard/{session_id}/products/{product_id:path}/options/{option_id:path}/toggle")
async def toggle_option_value(
    session_id: str,
    product_id: str,
    option_id: str,
    request: ToggleOptionValueRequest,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    try:
        wizard.toggle_option_value(product_id, option_id, request.value)
    except ProductNotInDraftError as e:
        raise HTTPException(status_code=404, detail=str(e))
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.put("/wizard/{session_id}/products/{product_id:path}/quantity")
async def set_quantity(
    session_id: str,
    product_id: str,
    request: QuantityRequest,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    try:
        wizard.set_quantity(product_id, request.quantity)
    except ProductNotInDraftError as e:
        raise HTTPException(status_code=404, detail=str(e))
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.delete("/wizard/{session_id}/products/{product_id:path}")
async def remove_product(
    session_id: str,
    product_id: str,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    try:
        wizard.remove_product(product_id)
    except ProductNotInDraftError as e:
        raise HTTPException(status_code=404, detail=str(e))
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.post("/wizard/{session_id}/next")
async def next_step(
    session_id: str,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    try:
        wizard.next()
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.post("/wizard/{session_id}/previous")
async def previous_step(
    session_id: str,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    _, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    wizard.previous()
    await store.save_session(session_id, wizard.state)
    return _state_payload(session_id, wizard)


@router.post("/wizard/{session_id}/submit")
async def submit_bundle(
    session_id: str,
    store: WizardStore = Depends(get_store),
    platform_factory: PlatformFactory = Depends(get_platform_factory),
    notifier: Notifier = Depends(get_notifier),
):
    """Create the bundle on the platform and record it"""
    shop_id, wizard = await _load_wizard(session_id, store, platform_factory, notifier)
    try:
        result = await wizard.submit()
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    await store.save_session(session_id, wizard.state)

    if not result.success:
        error = result.error
        if error is None and result.errors:
            error = next(iter(result.errors.values())).message
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": error, "state": _state_payload(session_id, wizard)},
        )

    bundle = await store.record_bundle(shop_id, result.definition, result.submitted_draft, result.operation)
    logger.info(f"Bundle {bundle.id} ('{bundle.title}') submitted for shop {shop_id}")
    return {
        "success": True,
        "bundleId": bundle.id,
        "bundleOperation": result.operation.to_dict(),
        "definition": result.definition.to_dict(),
        "state": _state_payload(session_id, wizard),
    }
