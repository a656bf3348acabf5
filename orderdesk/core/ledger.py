"""
orderdesk/core/ledger.py

Append-only negotiation ledger mechanics.

Invariants enforced here (for every append):
- timestamps never go backwards; an append stamped earlier than the latest
  recorded event lost a race and is refused with StaleNegotiationState;
- a caller that states which event it was answering (in_response_to = seq of
  the latest event it saw, 0 for none) is refused if the ledger moved on;
- once an accept/reject is recorded no offer/counter_offer may follow.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from .errors import InvalidTransition, StaleNegotiationState
from .records import NegotiationEvent, PurchaseOrder, stamp_or_now
from .taxonomy import OWNER

OFFER = "offer"
COUNTER_OFFER = "counter_offer"
ACCEPT = "accept"
REJECT = "reject"
MESSAGE = "message"

EVENT_KINDS = (OFFER, COUNTER_OFFER, ACCEPT, REJECT, MESSAGE)
OFFER_KINDS = frozenset({OFFER, COUNTER_OFFER})
CLOSING_KINDS = frozenset({ACCEPT, REJECT})
AMOUNT_KINDS = frozenset({OFFER, COUNTER_OFFER, ACCEPT})


def latest_offer(order: PurchaseOrder) -> Optional[NegotiationEvent]:
    for event in reversed(order.events):
        if event.kind in OFFER_KINDS:
            return event
    return None


def last_offerer(order: PurchaseOrder) -> Optional[str]:
    """
    Actor whose amount is currently on the table.

    With no offers recorded, the owner's original quote (total_amount) is the
    standing offer once the order has been dispatched.
    """
    offer = latest_offer(order)
    if offer is not None:
        return offer.actor
    return OWNER


def current_asking_amount(order: PurchaseOrder) -> Decimal:
    """Amount of the most recent offer/counter_offer, else the order's total."""
    offer = latest_offer(order)
    if offer is not None and offer.amount is not None:
        return offer.amount
    return order.total_amount


def is_closed(order: PurchaseOrder) -> bool:
    return any(event.kind in CLOSING_KINDS for event in order.events)


def next_offer_kind(order: PurchaseOrder) -> str:
    """First amount on the ledger is an offer, everything after is a counter."""
    return COUNTER_OFFER if latest_offer(order) is not None else OFFER


def check_fresh(
    order: PurchaseOrder,
    at: datetime,
    in_response_to: Optional[int] = None,
) -> None:
    """Raise StaleNegotiationState if this append would be based on an outdated ledger."""
    if in_response_to is not None and in_response_to != len(order.events):
        raise StaleNegotiationState(
            "The negotiation has new activity since you last refreshed. Refresh and try again.",
            order_id=order.id,
            seen=in_response_to,
            latest=len(order.events),
        )
    if order.events and at < order.events[-1].timestamp:
        raise StaleNegotiationState(
            "Another negotiation update was recorded first. Refresh and try again.",
            order_id=order.id,
            latest_at=order.events[-1].timestamp.isoformat(),
        )


def record_event(
    order: PurchaseOrder,
    actor: str,
    kind: str,
    *,
    amount: Optional[Decimal] = None,
    message: Optional[str] = None,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> NegotiationEvent:
    """Append one event to order.events (in place) after the freshness checks."""
    stamp = stamp_or_now(at)
    check_fresh(order, stamp, in_response_to)

    if kind in OFFER_KINDS and is_closed(order):
        raise InvalidTransition(
            "This negotiation has ended. No new offers can be submitted.",
            order_id=order.id,
        )

    event = NegotiationEvent(
        seq=len(order.events) + 1,
        actor=actor,
        kind=kind,
        amount=amount,
        message=message,
        timestamp=stamp,
    )
    order.events.append(event)
    order.updated_at = stamp
    return event
