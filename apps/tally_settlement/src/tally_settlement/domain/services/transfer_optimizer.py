"""Greedy debt netting from a balance map to point-to-point transfers."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from tally_settlement.domain.money import (
    DEFAULT_TOLERANCE,
    is_within_tolerance,
    quantize_money,
)
from tally_settlement.domain.value_objects import ParticipantId, Transfer


def optimize(
    balances: Mapping[ParticipantId, Decimal],
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[Transfer]:
    """Match the largest creditor with the largest debtor until one side runs out.

    This is a heuristic: it usually needs at most ``n - 1`` transfers but does
    not guarantee the minimum count. Sorting is stable, so participants with
    equal balances keep the order of ``balances``. Transfers are emitted
    creditor-major and rounded half-up to the smallest currency unit; amounts
    that round to zero are dropped. ``balances`` is not modified.
    """

    remaining = dict(balances)
    creditors = sorted(
        (pid for pid, balance in remaining.items() if balance > tolerance),
        key=lambda pid: remaining[pid],
        reverse=True,
    )
    debtors = sorted(
        (pid for pid, balance in remaining.items() if balance < -tolerance),
        key=lambda pid: remaining[pid],
    )

    transfers: list[Transfer] = []
    creditor_index = 0
    debtor_index = 0
    while creditor_index < len(creditors) and debtor_index < len(debtors):
        creditor = creditors[creditor_index]
        debtor = debtors[debtor_index]
        amount = min(remaining[creditor], -remaining[debtor])

        if amount > tolerance:
            rounded = quantize_money(amount)
            if rounded > 0:
                transfers.append(
                    Transfer(sender=debtor, receiver=creditor, amount=rounded)
                )
            remaining[creditor] -= amount
            remaining[debtor] += amount

        if is_within_tolerance(remaining[creditor], tolerance):
            creditor_index += 1
        if is_within_tolerance(remaining[debtor], tolerance):
            debtor_index += 1

    return transfers
