"""
Balance computation for a group.

Balances are derived, never stored: every read of a group recomputes them
from the member list and the full set of the group's expenses.

Sign convention: a positive balance is what the group owes that member,
a negative balance is what the member owes the group.
"""

import sys
from decimal import Decimal
from fractions import Fraction
from typing import Dict, Iterable, List, NamedTuple, Sequence, Tuple, Union


class MemberKnown(NamedTuple):
    name: str


class MemberUnknown(NamedTuple):
    name: str


def exact(amount) -> Fraction:
    """Exact rational value of an amount.

    Floats are read through their shortest decimal form, so 33.33 read back
    from the store is 3333/100 and not its binary approximation.
    """
    if isinstance(amount, float):
        return Fraction(Decimal(repr(amount)))
    if isinstance(amount, str):
        return Fraction(Decimal(amount))
    return Fraction(amount)


def to_number(value: Fraction) -> float:
    """JSON number for an exact amount; magnitudes beyond float range are clamped."""
    try:
        return float(value)
    except OverflowError:
        return sys.float_info.max if value > 0 else -sys.float_info.max


def resolve_member(name: str, balances: Dict[str, Fraction]) -> Union[MemberKnown, MemberUnknown]:
    if name in balances:
        return MemberKnown(name)
    return MemberUnknown(name)


def compute_balances(members: Sequence[str], expenses: Iterable) -> Tuple[Dict[str, Fraction], Fraction]:
    """
    Compute each member's net balance and the group's total spend.

    `expenses` are objects with `amount`, `paid_by` and `participants`
    (schemas.Expense). The payer is credited the full amount and every
    participant is debited an equal share, so a payer who also
    participates ends up credited amount minus their own share.

    Names that are not in `members` are skipped on both sides. Such an
    expense no longer sums to zero across the group; see
    `unknown_references`.

    Participants are assumed non-empty; intake guarantees it.
    """
    balances: Dict[str, Fraction] = {m: Fraction(0) for m in members}
    total = Fraction(0)

    for expense in expenses:
        amount = exact(expense.amount)
        total += amount
        share = amount / len(expense.participants)

        payer = resolve_member(expense.paid_by, balances)
        if isinstance(payer, MemberKnown):
            balances[payer.name] += amount

        for participant in expense.participants:
            resolved = resolve_member(participant, balances)
            if isinstance(resolved, MemberKnown):
                balances[resolved.name] -= share

    return balances, total


def unknown_references(members: Sequence[str], expenses: Iterable) -> List[str]:
    """Names used by expenses that are not current members, first-seen order."""
    known = set(members)
    seen: List[str] = []
    for expense in expenses:
        for name in [expense.paid_by, *expense.participants]:
            if name not in known and name not in seen:
                seen.append(name)
    return seen
