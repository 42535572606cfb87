"""
Bundle Schemas Package
Provides the draft, platform and cart-transform data structures.
"""

from .bundle_schemas import (
    # Enums
    DiscountType,
    ErrorCode,
    WizardStep,

    # Draft schemas
    ImageRef,
    OptionValue,
    OptionSelection,
    ProductSelection,
    BundleDraft,
    BundleDraftDict,
    FieldError,
    FieldErrorDict,
    CatalogProductDict,

    # Platform schemas
    ComponentOptionSelection,
    ComponentSpec,
    BundleDefinition,
    BundleDefinitionDict,
    BundleOperation,

    # Cart transform schemas
    ExpandedCartItemDict,
    ExpandOperationDict,
    CartTransformResultDict,

    # Helper functions
    coerce_quantity,
    coerce_date,
)
