"""Refunds against an order: command and handler.

``amount`` travels as text so that every value the caller sends, numeric or
not, is judged by the ledger's single validation function.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orderdesk.domain import orderdesk
from orderdesk.order import ledger
from orderdesk.order.order import Order


@orderdesk.command(part_of="Order")
class IssueRefund:
    """Refund part or all of the paid amount of an order."""

    order_id = Identifier(required=True)
    amount = Text()
    reason = String(max_length=500)
    issued_by = String(max_length=100)


@orderdesk.command_handler(part_of=Order)
class IssueRefundHandler:
    @handle(IssueRefund)
    def issue_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        outcome = ledger.issue_refund(
            order,
            command.amount,
            command.reason,
            issued_by=command.issued_by,
        )
        # Failed attempts are persisted too: the refund history is an audit trail.
        repo.add(order)
        return outcome
