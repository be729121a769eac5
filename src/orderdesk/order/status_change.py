"""Administrative status changes: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orderdesk.domain import orderdesk
from orderdesk.order.lifecycle import transition
from orderdesk.order.order import Order


@orderdesk.command(part_of="Order")
class ChangeOrderStatus:
    """Move an order to a new status.

    Shipping requires tracking number and URL. Cancelling restocks the
    items and refunds the remaining paid amount.
    """

    order_id = Identifier(required=True)
    new_status = String(required=True, max_length=50)
    tracking_number = String(max_length=100)
    tracking_url = String(max_length=500)
    carrier = String(max_length=100)
    notes = String(max_length=500)
    changed_by = String(max_length=100)


@orderdesk.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        outcome = transition(
            order,
            command.new_status,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            carrier=command.carrier,
            notes=command.notes,
            changed_by=command.changed_by,
        )
        repo.add(order)
        return outcome
