"""
Bundle Assembler
Converts a validated BundleDraft into the platform's bundle-creation shape.

This is the only place that knows how wizard state maps to the
productBundleCreate input:
- products -> components, 1:1 and in selection order (no dedup, no reordering)
- each option -> only its selected values
- quantity passes through unchanged
- title = trimmed bundle name

The assembler assumes the draft already passed validation; an option with no
selected values is emitted with an empty value list rather than rejected here.
"""

import json
import logging
from typing import Any, Dict

from schemas.bundle_schemas import (
    BundleDefinition,
    BundleDraft,
    ComponentOptionSelection,
    ComponentSpec,
)

logger = logging.getLogger(__name__)


def assemble(draft: BundleDraft) -> BundleDefinition:
    """Build the immutable BundleDefinition for a validated draft."""
    components = tuple(
        ComponentSpec(
            product_id=product.id,
            quantity=product.quantity,
            option_selections=tuple(
                ComponentOptionSelection(
                    component_option_id=option.id,
                    name=option.name,
                    values=option.selected_values,
                )
                for option in product.options
            ),
        )
        for product in draft.products
    )
    definition = BundleDefinition(title=draft.bundle_name.strip(), components=components)
    logger.debug(
        f"Assembled bundle '{definition.title}' with {len(definition.components)} components"
    )
    return definition


def to_mutation_variables(definition: BundleDefinition) -> Dict[str, Any]:
    """
    GraphQL variables for productBundleCreate.

    Output:
    {
        "input": {
            "title": "Summer Kit",
            "components": [
                {
                    "productId": "gid://shopify/Product/1",
                    "quantity": 2,
                    "optionSelections": [
                        {"componentOptionId": "gid://shopify/ProductOption/9",
                         "name": "Color", "values": ["Red", "Blue"]}
                    ]
                }
            ]
        }
    }
    """
    return {"input": definition.to_dict()}


def encode_definition(definition: BundleDefinition) -> str:
    """Serialize a definition for a wire boundary."""
    return json.dumps(definition.to_dict(), separators=(",", ":"))


def decode_definition(payload: str) -> BundleDefinition:
    """
    Inverse of encode_definition.

    Raises:
        ValueError: If the payload is not valid JSON or lacks required fields
    """
    try:
        data = json.loads(payload)
        return BundleDefinition.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        raise ValueError(f"Malformed bundle definition payload: {exc}") from exc
