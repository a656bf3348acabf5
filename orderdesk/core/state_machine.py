"""
orderdesk/core/state_machine.py

The single authority on purchase-order status changes.

Guard order for every request:
1) the (status, event) pair must be in TRANSITIONS and the actor allowed
   -> InvalidTransition
2) negotiation events must be based on the latest ledger state
   -> StaleNegotiationState
3) accept must come from the party that did NOT make the standing offer
   -> SelfAcceptance

apply_transition() never mutates its input; it returns the post-state copy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from . import ledger
from .errors import InvalidAmount, InvalidTransition, SelfAcceptance, StaleNegotiationState
from .records import PurchaseOrder, StatusChange, parse_amount, stamp_or_now
from .taxonomy import (
    ACCEPTED,
    ACTORS,
    COMPLETED,
    DELIVERED,
    DRAFT,
    IN_NEGOTIATION,
    IN_PROGRESS,
    OWNER,
    REJECTED,
    SENT,
    SHIPPED,
    VENDOR,
    display_label,
)

DISPATCH = "dispatch"
COUNTER = "counter"
ACCEPT = "accept"
REJECT = "reject"
BEGIN_WORK = "begin_work"
SHIP = "ship"
DELIVER = "deliver"
CLOSE = "close"

EVENTS = (DISPATCH, COUNTER, ACCEPT, REJECT, BEGIN_WORK, SHIP, DELIVER, CLOSE)
NEGOTIATION_EVENTS = frozenset({COUNTER, ACCEPT, REJECT})

BOTH = frozenset(ACTORS)


@dataclass(frozen=True)
class Rule:
    to_status: str
    actors: frozenset


TRANSITIONS: dict[tuple[str, str], Rule] = {
    (DRAFT, DISPATCH): Rule(SENT, frozenset({OWNER})),
    (SENT, COUNTER): Rule(IN_NEGOTIATION, frozenset({VENDOR})),
    (SENT, ACCEPT): Rule(ACCEPTED, frozenset({VENDOR})),
    (SENT, REJECT): Rule(REJECTED, frozenset({VENDOR})),
    (IN_NEGOTIATION, COUNTER): Rule(IN_NEGOTIATION, BOTH),
    (IN_NEGOTIATION, ACCEPT): Rule(ACCEPTED, BOTH),
    (IN_NEGOTIATION, REJECT): Rule(REJECTED, BOTH),
    (ACCEPTED, BEGIN_WORK): Rule(IN_PROGRESS, frozenset({OWNER})),
    (IN_PROGRESS, SHIP): Rule(SHIPPED, frozenset({VENDOR})),
    (SHIPPED, DELIVER): Rule(DELIVERED, frozenset({VENDOR})),
    (DELIVERED, CLOSE): Rule(COMPLETED, frozenset({OWNER})),
}

_EVENT_VERBS = {
    DISPATCH: "send",
    COUNTER: "make an offer on",
    ACCEPT: "accept",
    REJECT: "reject",
    BEGIN_WORK: "start work on",
    SHIP: "ship",
    DELIVER: "mark as delivered",
    CLOSE: "close",
}


def _rule_for(order: PurchaseOrder, event: str, actor: str) -> Rule:
    if event not in EVENTS:
        raise InvalidTransition(f"Unknown order event '{event}'.", order_id=order.id, event=event)
    if actor not in ACTORS:
        raise InvalidTransition(f"Unknown actor '{actor}'.", order_id=order.id, actor=actor)

    rule = TRANSITIONS.get((order.status, event))
    if rule is None:
        raise InvalidTransition(
            f"Cannot {_EVENT_VERBS[event]} an order that is {display_label(order.status)}.",
            order_id=order.id,
            status=order.status,
            event=event,
        )
    if actor not in rule.actors:
        allowed = " or ".join(sorted(rule.actors))
        raise InvalidTransition(
            f"Only the {allowed} can {_EVENT_VERBS[event]} this order right now.",
            order_id=order.id,
            status=order.status,
            event=event,
            actor=actor,
        )
    return rule


def allowed_events(order: PurchaseOrder, actor: Optional[str] = None) -> list[str]:
    """Events the actor may trigger now (all actors when actor is None)."""
    result = []
    for (status, event), rule in TRANSITIONS.items():
        if status != order.status:
            continue
        if actor is not None and actor not in rule.actors:
            continue
        if event == ACCEPT and actor is not None and order.status == IN_NEGOTIATION:
            if ledger.last_offerer(order) == actor:
                continue
        result.append(event)
    return result


def check_transition(order: PurchaseOrder, event: str, actor: str) -> Rule:
    """Validate without side effects; returns the matching Rule."""
    rule = _rule_for(order, event, actor)
    if event == ACCEPT and ledger.last_offerer(order) == actor:
        raise SelfAcceptance(
            "You cannot accept your own offer. Wait for the other party to respond.",
            order_id=order.id,
            actor=actor,
        )
    return rule


def apply_transition(
    order: PurchaseOrder,
    event: str,
    actor: str,
    *,
    amount=None,
    message: Optional[str] = None,
    at: Optional[datetime] = None,
    in_response_to: Optional[int] = None,
) -> PurchaseOrder:
    """
    Validate and apply one event, returning the post-state as a new record.

    `amount` is required for COUNTER. For ACCEPT it is optional; when given it
    must equal the amount on the table, otherwise the caller is accepting an
    offer that has since been superseded.
    """
    rule = _rule_for(order, event, actor)
    stamp = stamp_or_now(at)

    if event in NEGOTIATION_EVENTS:
        ledger.check_fresh(order, stamp, in_response_to)

    if event == ACCEPT:
        check_transition(order, event, actor)
        if amount is not None:
            seen = parse_amount(amount)
            if seen != ledger.current_asking_amount(order):
                raise StaleNegotiationState(
                    "The offer you are accepting has been replaced. Refresh and try again.",
                    order_id=order.id,
                    accepted=seen,
                    current=ledger.current_asking_amount(order),
                )
        if order.final_amount is not None:
            raise InvalidTransition("The final amount for this order is already locked.", order_id=order.id)

    offered: Optional[Decimal] = None
    if event == COUNTER:
        offered = parse_amount(amount)
        if offered <= 0:
            raise InvalidAmount("Offer amount must be greater than zero.", field="amount", value=amount)

    updated = copy.deepcopy(order)

    if event == COUNTER:
        ledger.record_event(updated, actor, ledger.next_offer_kind(updated), amount=offered, message=message, at=stamp)
    elif event == ACCEPT:
        agreed = ledger.current_asking_amount(updated)
        ledger.record_event(updated, actor, ledger.ACCEPT, amount=agreed, message=message, at=stamp)
        updated.final_amount = agreed
    elif event == REJECT:
        ledger.record_event(updated, actor, ledger.REJECT, message=message, at=stamp)

    # counter inside in_negotiation is a ledger entry, not a status change
    if rule.to_status != order.status:
        updated.history.append(
            StatusChange(from_status=order.status, to_status=rule.to_status, event=event, actor=actor, at=stamp)
        )
    updated.status = rule.to_status
    updated.updated_at = stamp
    return updated
