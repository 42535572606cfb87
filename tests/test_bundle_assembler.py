"""
Tests for the draft -> platform bundle definition conversion.
"""
import json

import pytest

from schemas.bundle_schemas import BundleDefinition
from services.bundle_assembler import (
    assemble,
    decode_definition,
    encode_definition,
    to_mutation_variables,
)

from conftest import HAT, SHIRT, complete_draft, make_option, make_product


class TestAssemble:
    def test_title_is_trimmed_name(self):
        assert assemble(complete_draft()).title == "Summer Kit"

    def test_components_follow_selection_order(self):
        definition = assemble(complete_draft(products=(HAT, SHIRT)))
        assert [c.product_id for c in definition.components] == [HAT.id, SHIRT.id]

    def test_duplicate_products_are_not_merged(self):
        definition = assemble(complete_draft(products=(HAT, HAT)))
        assert len(definition.components) == 2

    def test_only_selected_values_are_emitted(self):
        definition = assemble(complete_draft(products=(SHIRT,)))
        (shirt,) = definition.components
        color, size = shirt.option_selections

        assert shirt.quantity == 2
        assert color.component_option_id == "gid://shopify/ProductOption/11"
        assert color.name == "Color"
        assert color.values == ("Red", "Blue")
        assert "Green" not in color.values
        assert size.values == ("S", "M")

    def test_is_deterministic(self):
        assert assemble(complete_draft()) == assemble(complete_draft())

    def test_unvalidated_option_is_emitted_empty(self):
        product = make_product("p1", options=[make_option("o1", "Size", ["S"], selected=[])])
        (component,) = assemble(complete_draft(products=(product,))).components
        assert component.option_selections[0].values == ()


class TestWireShape:
    def test_mutation_variables(self):
        variables = to_mutation_variables(assemble(complete_draft(products=(HAT,))))
        assert variables == {
            "input": {
                "title": "Summer Kit",
                "components": [
                    {
                        "productId": "gid://shopify/Product/2",
                        "quantity": 1,
                        "optionSelections": [
                            {
                                "componentOptionId": "gid://shopify/ProductOption/21",
                                "name": "Size",
                                "values": ["One size"],
                            }
                        ],
                    }
                ],
            }
        }

    def test_encoded_definition_is_compact_json(self):
        payload = encode_definition(assemble(complete_draft(products=(HAT,))))
        assert " " not in payload.replace("Summer Kit", "").replace("One size", "")
        assert json.loads(payload)["components"][0]["productId"] == "gid://shopify/Product/2"

    def test_encode_decode_round_trip(self):
        definition = assemble(complete_draft())
        assert decode_definition(encode_definition(definition)) == definition

    @pytest.mark.parametrize("payload", ["not json", "{}", '{"title": "x", "components": [{"quantity": 1}]}', "[]"])
    def test_decode_rejects_malformed_payload(self, payload):
        with pytest.raises(ValueError):
            decode_definition(payload)

    def test_decoded_type(self):
        assert isinstance(decode_definition('{"title": "Kit", "components": []}'), BundleDefinition)
