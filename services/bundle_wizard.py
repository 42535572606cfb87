"""
Bundle Wizard State Machine

Drives the multi-step bundle creation flow:

    NAME -> PRODUCTS -> DISCOUNT -> DESCRIPTION -> submit()

Every transition replaces the current WizardState snapshot with a new one, so a
state object handed out earlier never changes under the caller. The machine
holds no locks: one caller drives one transition at a time, and preventing a
second submit while one is in flight is the caller's job.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from schemas.bundle_schemas import (
    BundleDefinition,
    BundleDraft,
    BundleOperation,
    CatalogProductDict,
    DiscountType,
    ErrorCode,
    FieldError,
    ProductSelection,
    WizardStep,
    coerce_date,
    coerce_quantity,
)
from services.bundle_assembler import assemble
from services.notifications import LoggingNotifier, Notifier
from services.shopify_admin import ShopifyAdminError
from services.step_validator import (
    DATE_RANGE,
    OPTIONS_INCOMPLETE_MESSAGE,
    PRODUCTS,
    validate_product_options,
    validate_product_step,
    validate_step,
)

logger = logging.getLogger(__name__)


class WizardTransitionError(Exception):
    """Raised for transitions that are not allowed from the current step."""
    pass


class ProductNotInDraftError(LookupError):
    pass


class BundlePlatform(Protocol):
    async def create_bundle(self, definition: BundleDefinition) -> BundleOperation:
        ...


class ProductCatalog(Protocol):
    async def fetch_products(self, product_ids: Sequence[str]) -> List[CatalogProductDict]:
        ...


# Forward transitions; previous() walks this table backwards
NEXT_STEP: Dict[WizardStep, WizardStep] = {
    WizardStep.NAME: WizardStep.PRODUCTS,
    WizardStep.PRODUCTS: WizardStep.DISCOUNT,
    WizardStep.DISCOUNT: WizardStep.DESCRIPTION,
}
PREVIOUS_STEP: Dict[WizardStep, WizardStep] = {nxt: cur for cur, nxt in NEXT_STEP.items()}

# Editable draft fields -> the error key a change to that field clears
FIELD_ERROR_KEYS: Dict[str, Optional[str]] = {
    "bundle_name": "bundle_name",
    "create_section_block": None,
    "discount_type": None,
    "discount_value": "discount_value",
    "start_date": DATE_RANGE,
    "end_date": DATE_RANGE,
    "description": "description",
}


@dataclass(frozen=True)
class WizardState:
    step: WizardStep = WizardStep.NAME
    draft: BundleDraft = field(default_factory=BundleDraft)
    errors: Mapping[str, FieldError] = field(default_factory=dict)
    errors_visible: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WizardState":
        return cls(
            step=WizardStep(int(data.get("step", WizardStep.first()))),
            draft=BundleDraft.from_dict(data.get("draft") or {}),
            errors={k: FieldError.from_dict(v) for k, v in (data.get("errors") or {}).items()},
            errors_visible=bool(data.get("errors_visible", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": int(self.step),
            "draft": self.draft.to_dict(),
            "errors": {k: v.to_dict() for k, v in self.errors.items()},
            "errors_visible": self.errors_visible,
        }


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    definition: Optional[BundleDefinition] = None
    operation: Optional[BundleOperation] = None
    submitted_draft: Optional[BundleDraft] = None
    error: Optional[str] = None
    errors: Mapping[str, FieldError] = field(default_factory=dict)


class BundleWizard:
    """Step-by-step accumulator for a bundle definition."""

    def __init__(
        self,
        platform: BundlePlatform,
        notifier: Optional[Notifier] = None,
        state: Optional[WizardState] = None,
    ):
        self.platform = platform
        self.notifier = notifier or LoggingNotifier()
        self._state = state or WizardState()

    # ---------- read side ----------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def step(self) -> WizardStep:
        return self._state.step

    @property
    def draft(self) -> BundleDraft:
        return self._state.draft

    @property
    def errors(self) -> Mapping[str, FieldError]:
        return self._state.errors

    @property
    def errors_visible(self) -> bool:
        return self._state.errors_visible

    @property
    def is_last_step(self) -> bool:
        return self._state.step == WizardStep.last()

    @property
    def option_errors(self) -> Dict[str, Dict[str, FieldError]]:
        return validate_product_options(self._state.draft.products)

    # ---------- field edits ----------

    def set_field(self, name: str, value: Any) -> WizardState:
        """Update one draft field; clears only that field's error."""
        if name not in FIELD_ERROR_KEYS:
            raise ValueError(f"Unknown bundle field: {name}")

        if name in ("start_date", "end_date"):
            coerced: Any = coerce_date(value)
        elif name == "discount_type":
            coerced = DiscountType(value)
        elif name == "create_section_block":
            coerced = bool(value)
        else:
            coerced = "" if value is None else str(value)

        errors = dict(self._state.errors)
        error_key = FIELD_ERROR_KEYS[name]
        if error_key:
            errors.pop(error_key, None)

        self._state = replace(
            self._state,
            draft=replace(self._state.draft, **{name: coerced}),
            errors=errors,
        )
        return self._state

    # ---------- product step ----------

    def _apply_products(self, products: Sequence[ProductSelection]) -> WizardState:
        """Swap in a new product list and refresh the live option check."""
        products = tuple(products)
        errors = dict(self._state.errors)
        if validate_product_options(products):
            errors[PRODUCTS] = FieldError(ErrorCode.NO_OPTION_VALUE_SELECTED, OPTIONS_INCOMPLETE_MESSAGE)
        else:
            errors.pop(PRODUCTS, None)
        self._state = replace(
            self._state,
            draft=replace(self._state.draft, products=products),
            errors=errors,
        )
        return self._state

    def _require_product(self, product_id: str) -> ProductSelection:
        product = self._state.draft.find_product(product_id)
        if product is None:
            raise ProductNotInDraftError(f"Product {product_id} is not part of this bundle")
        return product

    def select_products(self, catalog_products: Sequence[Mapping[str, Any]]) -> WizardState:
        """
        Replace the product list with a catalog selection.

        Products already in the draft keep their quantity and option toggles;
        new ones are seeded with every option value selected. An empty
        selection leaves the draft as it is.
        """
        if not catalog_products:
            return self._state

        products = []
        for catalog_product in catalog_products:
            existing = self._state.draft.find_product(str(catalog_product["id"]))
            products.append(existing or ProductSelection.from_catalog(catalog_product))
        return self._apply_products(products)

    async def pick_products(self, catalog: ProductCatalog, product_ids: Sequence[str]) -> bool:
        """
        Look products up in the catalog and select them.

        Returns False when the lookup fails; the draft is left untouched so the
        merchant can retry.
        """
        try:
            catalog_products = await catalog.fetch_products(product_ids)
        except ShopifyAdminError as exc:
            logger.error(f"Error selecting products {list(product_ids)}: {exc}")
            return False
        self.select_products(catalog_products)
        return True

    def toggle_option_value(self, product_id: str, option_id: str, value: str) -> WizardState:
        self._require_product(product_id)
        return self._apply_products([
            replace(
                product,
                options=tuple(
                    option.toggle(value) if option.id == option_id else option
                    for option in product.options
                ),
            )
            if product.id == product_id else product
            for product in self._state.draft.products
        ])

    def set_quantity(self, product_id: str, quantity: Any) -> WizardState:
        self._require_product(product_id)
        coerced = coerce_quantity(quantity)
        return self._apply_products([
            replace(product, quantity=coerced) if product.id == product_id else product
            for product in self._state.draft.products
        ])

    def remove_product(self, product_id: str) -> WizardState:
        self._require_product(product_id)
        return self._apply_products([
            product for product in self._state.draft.products if product.id != product_id
        ])

    # ---------- transitions ----------

    def next(self) -> WizardState:
        """Validate the current step and advance when it passes."""
        if self.is_last_step:
            raise WizardTransitionError("Already on the last step; submit the bundle instead")

        errors = validate_step(self._state.step, self._state.draft)
        if errors:
            logger.debug(f"Step {self._state.step.name} blocked by {sorted(errors)}")
            self._state = replace(self._state, errors=errors, errors_visible=True)
        else:
            self._state = replace(
                self._state,
                step=NEXT_STEP[self._state.step],
                errors={},
                errors_visible=False,
            )
        return self._state

    def previous(self) -> WizardState:
        """Go back one step without validating."""
        self._state = replace(
            self._state,
            step=PREVIOUS_STEP.get(self._state.step, WizardStep.first()),
            errors_visible=False,
        )
        return self._state

    def reset(self) -> WizardState:
        self._state = WizardState()
        return self._state

    async def submit(self) -> SubmitResult:
        """
        Validate, assemble and register the bundle.

        On success the wizard resets to a fresh draft at step 1. On validation
        or platform failure the draft and step are kept for correction.
        """
        if not self.is_last_step:
            raise WizardTransitionError("Bundles can only be submitted from the last step")

        draft = self._state.draft
        errors = {**validate_product_step(draft), **validate_step(self._state.step, draft)}
        if errors:
            self._state = replace(self._state, errors=errors, errors_visible=True)
            return SubmitResult(success=False, errors=errors)

        definition = assemble(draft)
        try:
            operation = await self.platform.create_bundle(definition)
        except ShopifyAdminError as exc:
            logger.error(f"Error creating bundle '{definition.title}': {exc}")
            return SubmitResult(success=False, definition=definition, submitted_draft=draft, error=str(exc))

        try:
            await self.notifier.notify_bundle_created(definition, operation)
        except Exception:
            logger.exception(f"Bundle '{definition.title}' created but notification failed")

        self.reset()
        return SubmitResult(
            success=True,
            definition=definition,
            operation=operation,
            submitted_draft=draft,
        )
