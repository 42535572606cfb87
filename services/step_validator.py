"""
Step validators for the bundle wizard.

Each validator inspects one slice of a BundleDraft and returns a mapping of
field name -> FieldError. An empty mapping means the step may advance.
Validators are pure and never raise for bad input; they only report it.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterable

from schemas.bundle_schemas import (
    BundleDraft,
    ErrorCode,
    FieldError,
    ProductSelection,
    WizardStep,
)

logger = logging.getLogger(__name__)

StepErrors = Dict[str, FieldError]
StepValidatorFn = Callable[[BundleDraft], StepErrors]

# Field keys used in error mappings
BUNDLE_NAME = "bundle_name"
PRODUCTS = "products"
DISCOUNT_VALUE = "discount_value"
DATE_RANGE = "date_range"
DESCRIPTION = "description"

OPTIONS_INCOMPLETE_MESSAGE = "Please ensure all products have at least one option selected"


def validate_name_step(draft: BundleDraft) -> StepErrors:
    errors: StepErrors = {}
    if not draft.bundle_name.strip():
        errors[BUNDLE_NAME] = FieldError(ErrorCode.MISSING_NAME, "Bundle name is required")
    return errors


def validate_product_options(
    products: Iterable[ProductSelection],
) -> Dict[str, Dict[str, FieldError]]:
    """
    Live per-product / per-option check.

    Returns {product_id: {option_id: FieldError}} for every option that has no
    selected value. Runs on every product change, not only when advancing.
    """
    product_errors: Dict[str, Dict[str, FieldError]] = {}
    for product in products:
        for option in product.options:
            if not option.has_selection:
                product_errors.setdefault(product.id, {})[option.id] = FieldError(
                    ErrorCode.NO_OPTION_VALUE_SELECTED,
                    f"At least one {option.name} must be selected",
                )
    return product_errors


def validate_product_step(draft: BundleDraft) -> StepErrors:
    errors: StepErrors = {}
    if not draft.products:
        errors[PRODUCTS] = FieldError(ErrorCode.NO_PRODUCTS, "At least one product must be selected")
    elif validate_product_options(draft.products):
        errors[PRODUCTS] = FieldError(ErrorCode.NO_OPTION_VALUE_SELECTED, OPTIONS_INCOMPLETE_MESSAGE)
    return errors


def _is_positive_number(raw: str) -> bool:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, ValueError):
        return False
    return value.is_finite() and value > 0


def validate_discount_step(draft: BundleDraft) -> StepErrors:
    errors: StepErrors = {}
    if not draft.discount_value.strip():
        errors[DISCOUNT_VALUE] = FieldError(
            ErrorCode.MISSING_DISCOUNT_VALUE, "Discount value is required"
        )
    elif not _is_positive_number(draft.discount_value):
        errors[DISCOUNT_VALUE] = FieldError(
            ErrorCode.MISSING_DISCOUNT_VALUE, "Discount value must be a positive number"
        )
    if draft.start_date >= draft.end_date:
        errors[DATE_RANGE] = FieldError(
            ErrorCode.INVALID_DATE_RANGE, "End date must be after start date"
        )
    return errors


def validate_description_step(draft: BundleDraft) -> StepErrors:
    errors: StepErrors = {}
    if not draft.description.strip():
        errors[DESCRIPTION] = FieldError(ErrorCode.MISSING_DESCRIPTION, "Description is required")
    return errors


STEP_VALIDATORS: Dict[WizardStep, StepValidatorFn] = {
    WizardStep.NAME: validate_name_step,
    WizardStep.PRODUCTS: validate_product_step,
    WizardStep.DISCOUNT: validate_discount_step,
    WizardStep.DESCRIPTION: validate_description_step,
}


def validate_step(step: WizardStep, draft: BundleDraft) -> StepErrors:
    """Run the validator registered for a step."""
    return STEP_VALIDATORS[WizardStep(step)](draft)
