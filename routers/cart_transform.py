"""
Cart Transform Router
Runs the bundle expansion function over a cart input document
"""
from fastapi import APIRouter, Body
from typing import Any, Dict
import logging

from services.cart_transform import run

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/cart-transform/run")
async def run_cart_transform(function_input: Dict[str, Any] = Body(...)):
    """Return expand operations for every bundle line in the cart"""
    result = run(function_input)
    logger.info(f"Cart transform produced {len(result['operations'])} expand operation(s)")
    return result
