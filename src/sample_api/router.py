import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from standard_dependencies import DocumentedRoute, log_context

_LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"], route_class=DocumentedRoute)


class Order(BaseModel):
    id: str
    item: str
    quantity: int


_ORDERS: dict[str, Order] = {
    "o-1": Order(id="o-1", item="Rain gauge", quantity=2),
    "o-2": Order(id="o-2", item="Anemometer", quantity=1),
}


@router.get("")
def list_orders() -> list[Order]:
    """List every known order.

    Orders are returned in the order they were placed.
    """
    _LOGGER.info("Listing orders")
    return list(_ORDERS.values())


@router.get("/{order_id}")
def read_order(order_id: str) -> Order:
    """Fetch a single order by its identifier."""
    with log_context(order_id=order_id):
        order = _ORDERS.get(order_id)
        if order is None:
            _LOGGER.warning("Order not found")
            raise HTTPException(status_code=404, detail="Order not found")
        _LOGGER.info("Order found")
        return order
