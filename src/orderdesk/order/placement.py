"""Order placement: command and handler.

Checkout lives outside the back office; this command is how a placed order
enters it, in Pending status with nothing refunded.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from orderdesk.domain import logger, orderdesk
from orderdesk.order.order import Order


@orderdesk.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier()
    customer_email = String(max_length=255)
    items = Text(required=True)  # JSON: list of item dicts
    total_amount = Float(min_value=0.0)  # Optional: defaults to sum of line totals
    currency = String(max_length=3, default="GBP")


@orderdesk.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        order = Order.place(
            items_data=items_data,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            total_amount=command.total_amount,
            currency=command.currency or "GBP",
        )
        current_domain.repository_for(Order).add(order)
        logger.info("order_placed", order_id=str(order.id), total_amount=order.total_amount)
        return str(order.id)
