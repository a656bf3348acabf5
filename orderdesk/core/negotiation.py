"""
orderdesk/core/negotiation.py

Negotiation commands on top of the ledger: offers, acceptance, rejection and
free-text messages. Status effects always go through the state machine.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Optional

from . import ledger, state_machine
from .errors import InvalidAmount, InvalidTransition
from .records import NegotiationEvent, PurchaseOrder, stamp_or_now
from .taxonomy import ACTORS, NEGOTIABLE_STATUSES, TERMINAL_STATUSES, display_label

MAX_MESSAGE_LENGTH = 2000


def append_offer(
    order: PurchaseOrder,
    actor: str,
    amount,
    message: Optional[str] = None,
    *,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> PurchaseOrder:
    """
    Put a new amount on the table.

    The first offer on a `sent` order moves it to in_negotiation.
    """
    if order.status not in NEGOTIABLE_STATUSES:
        raise InvalidTransition(
            f"Offers can only be made while an order is New or Negotiating (it is {display_label(order.status)}).",
            order_id=order.id,
            status=order.status,
        )
    return state_machine.apply_transition(
        order,
        state_machine.COUNTER,
        actor,
        amount=amount,
        message=message,
        at=at,
        in_response_to=in_response_to,
    )


def accept(
    order: PurchaseOrder,
    actor: str,
    *,
    amount=None,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> PurchaseOrder:
    return state_machine.apply_transition(
        order, state_machine.ACCEPT, actor, amount=amount, at=at, in_response_to=in_response_to
    )


def reject(
    order: PurchaseOrder,
    actor: str,
    reason: Optional[str] = None,
    *,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> PurchaseOrder:
    return state_machine.apply_transition(
        order, state_machine.REJECT, actor, message=reason, at=at, in_response_to=in_response_to
    )


def append_message(
    order: PurchaseOrder,
    actor: str,
    text: Optional[str],
    *,
    at: Optional[datetime] = None,
) -> PurchaseOrder:
    """Chat message on the order; no status effect. Closed once the order is terminal."""
    if actor not in ACTORS:
        raise InvalidTransition(f"Unknown actor '{actor}'.", order_id=order.id, actor=actor)
    if order.status in TERMINAL_STATUSES:
        raise InvalidTransition(
            "This negotiation has ended. No new messages can be sent.",
            order_id=order.id,
            status=order.status,
        )
    content = (text or "").strip()
    if not content:
        raise InvalidTransition("Message content is required.", order_id=order.id)
    if len(content) > MAX_MESSAGE_LENGTH:
        raise InvalidTransition(
            f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters.", order_id=order.id
        )

    updated = copy.deepcopy(order)
    ledger.record_event(updated, actor, ledger.MESSAGE, message=content, at=stamp_or_now(at))
    return updated


def apply_negotiation_event(
    order: PurchaseOrder,
    actor: str,
    kind: str,
    amount=None,
    message: Optional[str] = None,
    *,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> tuple[PurchaseOrder, NegotiationEvent]:
    """Route a ledger event by kind; returns (post-state order, recorded event)."""
    if kind in ledger.OFFER_KINDS:
        if amount is None:
            raise InvalidAmount("An amount is required for an offer.", field="amount", value=None)
        updated = append_offer(order, actor, amount, message, at=at, in_response_to=in_response_to)
    elif kind == ledger.ACCEPT:
        updated = accept(order, actor, amount=amount, at=at, in_response_to=in_response_to)
    elif kind == ledger.REJECT:
        updated = reject(order, actor, message, at=at, in_response_to=in_response_to)
    elif kind == ledger.MESSAGE:
        updated = append_message(order, actor, message, at=at)
    else:
        raise InvalidTransition(f"Unknown negotiation event kind '{kind}'.", order_id=order.id, kind=kind)
    return updated, updated.events[-1]
