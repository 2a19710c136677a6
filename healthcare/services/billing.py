"""
Pure billing rules: line-item totals, payment status transitions and
reference numbers.  Nothing in this module touches the database.
"""
from __future__ import annotations

import random
import time
from decimal import Decimal
from typing import Iterable, Tuple

CENT = Decimal('0.01')

# cash and government payments settle on the spot; insurance waits for the
# claim; everything else goes through a processor and is completed by staff
IMMEDIATE_METHODS = frozenset({'cash', 'government'})
DEFERRED_METHODS = frozenset({'insurance'})

TRANSITIONS = {
    'pending': frozenset({'processing', 'completed', 'failed', 'cancelled'}),
    'processing': frozenset({'completed', 'failed', 'cancelled'}),
}


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_totals(items: Iterable[Tuple[int, Decimal]], tax=0, discount=0) -> tuple[Decimal, Decimal]:
    """Return ``(subtotal, total)`` for ``(quantity, unit_price)`` pairs.

    ``total == subtotal + tax - discount`` always holds.
    """
    subtotal = sum((_dec(qty) * _dec(price) for qty, price in items), Decimal('0')).quantize(CENT)
    total = (subtotal + _dec(tax) - _dec(discount)).quantize(CENT)
    return subtotal, total


def initial_status(method: str) -> str:
    if method in IMMEDIATE_METHODS:
        return 'completed'
    if method in DEFERRED_METHODS:
        return 'pending'
    return 'processing'


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    return target in TRANSITIONS.get(current, frozenset())


def refund_status(refund_amount: Decimal, paid_amount: Decimal) -> str:
    return 'refunded' if _dec(refund_amount) == _dec(paid_amount) else 'partially_refunded'


def _reference(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}{random.randint(0, 999):03d}"


def transaction_reference() -> str:
    return _reference('TXN')


def refund_reference() -> str:
    return _reference('REF')
