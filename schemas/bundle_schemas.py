"""
Bundle Builder Schemas
======================

Canonical data structures shared by the bundle wizard, the assembler and the
cart transform.

TWO FAMILIES OF SHAPES:
-----------------------
1. Draft shapes (BundleDraft, ProductSelection, OptionSelection, ...)
   - Accumulated by the wizard, one step at a time
   - Frozen snapshots: every change produces a new object via dataclasses.replace
   - Serialized with snake_case keys for session persistence

2. Platform shapes (BundleDefinition, ComponentSpec, ...)
   - Derived once from a validated draft at submission time
   - Serialized with the camelCase keys expected by productBundleCreate

CART TRANSFORM SHAPES:
----------------------
ExpandOperationDict / ExpandedCartItemDict describe the exact output contract
of the checkout pipeline's cart transform. Field names and the
``type: "expand"`` discriminator are fixed by the platform.
"""

from typing import List, Dict, Any, Optional, Tuple, TypedDict, Literal, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
import logging

from settings import WIZARD_DEFAULT_DISCOUNT_DAYS

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class WizardStep(IntEnum):
    """Wizard steps in order; only the last step can submit."""
    NAME = 1
    PRODUCTS = 2
    DISCOUNT = 3
    DESCRIPTION = 4

    @classmethod
    def first(cls) -> "WizardStep":
        return cls.NAME

    @classmethod
    def last(cls) -> "WizardStep":
        return cls.DESCRIPTION


class ErrorCode(str, Enum):
    """Field-level validation error codes surfaced by the wizard."""
    MISSING_NAME = "MissingName"
    NO_PRODUCTS = "NoProducts"
    NO_OPTION_VALUE_SELECTED = "NoOptionValueSelected"
    MISSING_DISCOUNT_VALUE = "MissingDiscountValue"
    INVALID_DATE_RANGE = "InvalidDateRange"
    MISSING_DESCRIPTION = "MissingDescription"


# =============================================================================
# TYPE DEFINITIONS (wire shapes)
# =============================================================================

class ImageRefDict(TypedDict, total=False):
    original_src: str           # CDN url of the product image
    alt_text: Optional[str]


class OptionValueDict(TypedDict):
    value: str                  # Catalog value, e.g. "Red"
    selected: bool              # Included in the bundle?


class OptionSelectionDict(TypedDict):
    id: str                     # "gid://shopify/ProductOption/1"
    name: str                   # "Color"
    values: List[OptionValueDict]


class ProductSelectionDict(TypedDict, total=False):
    id: str                     # "gid://shopify/Product/123"
    title: str
    vendor: str
    images: List[ImageRefDict]
    quantity: int
    options: List[OptionSelectionDict]


class BundleDraftDict(TypedDict, total=False):
    bundle_name: str
    create_section_block: bool
    products: List[ProductSelectionDict]
    discount_type: str          # "percentage" | "fixed"
    discount_value: str         # Decimal string as typed by the merchant
    start_date: str             # ISO date
    end_date: str               # ISO date
    description: str


class FieldErrorDict(TypedDict):
    code: str                   # ErrorCode value
    message: str


class CatalogProductDict(TypedDict, total=False):
    """Product as returned by the catalog lookup."""
    id: str
    title: str
    vendor: str
    images: List[Dict[str, Any]]
    options: List[Dict[str, Any]]   # [{id, name, values: [str]}]


class ComponentOptionSelectionDict(TypedDict):
    componentOptionId: str
    name: str
    values: List[str]


class ComponentSpecDict(TypedDict):
    productId: str
    quantity: int
    optionSelections: List[ComponentOptionSelectionDict]


class BundleDefinitionDict(TypedDict):
    title: str
    components: List[ComponentSpecDict]


class BundleOperationDict(TypedDict, total=False):
    id: Optional[str]
    status: Optional[str]


class ExpandedCartItemDict(TypedDict):
    merchandise_id: str
    quantity: int
    price: None
    attributes: None


class ExpandOperationDict(TypedDict):
    type: Literal["expand"]
    cart_line_id: str
    expanded_cart_items: List[ExpandedCartItemDict]


class CartTransformResultDict(TypedDict):
    operations: List[ExpandOperationDict]


# =============================================================================
# NORMALIZATION HELPERS
# =============================================================================

def coerce_quantity(raw: Any) -> int:
    """Coerce a raw quantity input to a positive integer (1 when unusable)."""
    if isinstance(raw, bool):
        return 1
    try:
        quantity = int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        return 1
    return quantity if quantity >= 1 else 1


def coerce_date(value: Any) -> date:
    """Accept a date, a datetime or an ISO string (date or datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Invalid date value: {value!r}")


def _default_end_date() -> date:
    return date.today() + timedelta(days=WIZARD_DEFAULT_DISCOUNT_DAYS)


# =============================================================================
# DRAFT DATACLASSES
# =============================================================================

@dataclass(frozen=True)
class ImageRef:
    original_src: str
    alt_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImageRef":
        # Resource picker payloads use originalSrc; newer Admin API uses url.
        src = data.get("original_src") or data.get("originalSrc") or data.get("url") or ""
        alt = data.get("alt_text", data.get("altText"))
        return cls(original_src=str(src), alt_text=alt)

    def to_dict(self) -> ImageRefDict:
        return {"original_src": self.original_src, "alt_text": self.alt_text}


@dataclass(frozen=True)
class OptionValue:
    value: str
    selected: bool = True

    def to_dict(self) -> OptionValueDict:
        return {"value": self.value, "selected": self.selected}


@dataclass(frozen=True)
class OptionSelection:
    """One catalog option of a product, with per-value toggles."""
    id: str
    name: str
    values: Tuple[OptionValue, ...] = ()

    @property
    def has_selection(self) -> bool:
        return any(v.selected for v in self.values)

    @property
    def selected_values(self) -> Tuple[str, ...]:
        return tuple(v.value for v in self.values if v.selected)

    def toggle(self, value: str) -> "OptionSelection":
        return OptionSelection(
            id=self.id,
            name=self.name,
            values=tuple(
                OptionValue(v.value, not v.selected) if v.value == value else v
                for v in self.values
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OptionSelection":
        values = []
        for raw in data.get("values", []):
            if isinstance(raw, Mapping):
                values.append(OptionValue(str(raw["value"]), bool(raw.get("selected", True))))
            else:
                # Catalog values arrive as bare strings; seed them as selected
                values.append(OptionValue(str(raw), True))
        return cls(id=str(data["id"]), name=str(data.get("name", "")), values=tuple(values))

    def to_dict(self) -> OptionSelectionDict:
        return {
            "id": self.id,
            "name": self.name,
            "values": [v.to_dict() for v in self.values],
        }


@dataclass(frozen=True)
class ProductSelection:
    """A catalog product picked into the bundle."""
    id: str
    title: str
    vendor: str = ""
    images: Tuple[ImageRef, ...] = ()
    quantity: int = 1
    options: Tuple[OptionSelection, ...] = ()

    @classmethod
    def from_catalog(cls, product: Mapping[str, Any]) -> "ProductSelection":
        """Seed a selection from a catalog product with every option value selected."""
        return cls(
            id=str(product["id"]),
            title=str(product.get("title", "")),
            vendor=str(product.get("vendor") or ""),
            images=tuple(ImageRef.from_dict(img) for img in product.get("images") or []),
            quantity=1,
            options=tuple(OptionSelection.from_dict(opt) for opt in product.get("options") or []),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductSelection":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            vendor=str(data.get("vendor") or ""),
            images=tuple(ImageRef.from_dict(img) for img in data.get("images") or []),
            quantity=coerce_quantity(data.get("quantity", 1)),
            options=tuple(OptionSelection.from_dict(opt) for opt in data.get("options") or []),
        )

    def to_dict(self) -> ProductSelectionDict:
        return {
            "id": self.id,
            "title": self.title,
            "vendor": self.vendor,
            "images": [img.to_dict() for img in self.images],
            "quantity": self.quantity,
            "options": [opt.to_dict() for opt in self.options],
        }


@dataclass(frozen=True)
class BundleDraft:
    """Snapshot of everything the merchant has entered so far."""
    bundle_name: str = ""
    create_section_block: bool = False
    products: Tuple[ProductSelection, ...] = ()
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: str = ""
    start_date: date = field(default_factory=date.today)
    end_date: date = field(default_factory=_default_end_date)
    description: str = ""

    def find_product(self, product_id: str) -> Optional[ProductSelection]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BundleDraft":
        initial = cls()
        return cls(
            bundle_name=str(data.get("bundle_name", "")),
            create_section_block=bool(data.get("create_section_block", False)),
            products=tuple(ProductSelection.from_dict(p) for p in data.get("products") or []),
            discount_type=DiscountType(data.get("discount_type", DiscountType.PERCENTAGE.value)),
            discount_value=str(data.get("discount_value", "")),
            start_date=coerce_date(data["start_date"]) if data.get("start_date") else initial.start_date,
            end_date=coerce_date(data["end_date"]) if data.get("end_date") else initial.end_date,
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> BundleDraftDict:
        return {
            "bundle_name": self.bundle_name,
            "create_section_block": self.create_section_block,
            "products": [p.to_dict() for p in self.products],
            "discount_type": self.discount_type.value,
            "discount_value": self.discount_value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "description": self.description,
        }


@dataclass(frozen=True)
class FieldError:
    code: ErrorCode
    message: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldError":
        return cls(code=ErrorCode(data["code"]), message=str(data.get("message", "")))

    def to_dict(self) -> FieldErrorDict:
        return {"code": self.code.value, "message": self.message}


# =============================================================================
# PLATFORM DATACLASSES
# =============================================================================

@dataclass(frozen=True)
class ComponentOptionSelection:
    component_option_id: str
    name: str
    values: Tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComponentOptionSelection":
        return cls(
            component_option_id=str(data["componentOptionId"]),
            name=str(data["name"]),
            values=tuple(str(v) for v in data["values"]),
        )

    def to_dict(self) -> ComponentOptionSelectionDict:
        return {
            "componentOptionId": self.component_option_id,
            "name": self.name,
            "values": list(self.values),
        }


@dataclass(frozen=True)
class ComponentSpec:
    product_id: str
    quantity: int
    option_selections: Tuple[ComponentOptionSelection, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComponentSpec":
        return cls(
            product_id=str(data["productId"]),
            quantity=int(data["quantity"]),
            option_selections=tuple(
                ComponentOptionSelection.from_dict(o) for o in data.get("optionSelections", [])
            ),
        )

    def to_dict(self) -> ComponentSpecDict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "optionSelections": [o.to_dict() for o in self.option_selections],
        }


@dataclass(frozen=True)
class BundleDefinition:
    """Immutable, platform-ready bundle definition."""
    title: str
    components: Tuple[ComponentSpec, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BundleDefinition":
        return cls(
            title=str(data["title"]),
            components=tuple(ComponentSpec.from_dict(c) for c in data["components"]),
        )

    def to_dict(self) -> BundleDefinitionDict:
        return {
            "title": self.title,
            "components": [c.to_dict() for c in self.components],
        }


@dataclass(frozen=True)
class BundleOperation:
    """Handle returned by productBundleCreate (creation runs asynchronously on the platform)."""
    id: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BundleOperation":
        data = data or {}
        return cls(id=data.get("id"), status=data.get("status"))

    def to_dict(self) -> BundleOperationDict:
        return {"id": self.id, "status": self.status}
