"""
Intake checks run before a group or an expense is persisted.

Both validators raise on the first failing check and return the
normalized document fields on success. Nothing is written by this module.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from errors import AuthorizationError, Reason, ValidationError
from schemas import MAX_AMOUNT, MAX_AMOUNT_DIGITS, Group

GROUP_NAME_MAX = 100
GROUP_DESCRIPTION_MAX = 500
REQUIRED_EXPENSE_FIELDS = ("description", "amount", "paid_by", "participants", "date")


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _to_decimal(value) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return amount if amount.is_finite() else None


def _significant_digits(amount: Decimal) -> int:
    digits = amount.as_tuple().digits
    return len("".join(map(str, digits)).strip("0"))


def validate_expense(group: Group, proposed: dict, caller_id: str) -> dict:
    """
    Decide whether `proposed` may be stored against `group`.

    `proposed` holds description, amount, paid_by, participants and date.
    Checks run in a fixed order so the reported reason is deterministic:
    missing fields, participants, amount, ownership, payer membership,
    participant membership.
    """
    missing = [f for f in REQUIRED_EXPENSE_FIELDS if _is_missing(proposed.get(f))]
    if missing:
        raise ValidationError("All fields are required", Reason.MISSING_FIELDS, missing)

    participants = proposed["participants"]
    if isinstance(participants, str) or not isinstance(participants, (list, tuple)) or not participants:
        raise ValidationError("At least one participant is required", Reason.NO_PARTICIPANTS)

    amount = _to_decimal(proposed["amount"])
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be greater than 0", Reason.NON_POSITIVE_AMOUNT)
    if amount > MAX_AMOUNT or _significant_digits(amount) > MAX_AMOUNT_DIGITS:
        raise ValidationError(
            f"Amount must be at most {MAX_AMOUNT} with at most {MAX_AMOUNT_DIGITS} significant digits",
            Reason.AMOUNT_OUT_OF_RANGE,
        )

    if str(group.owner_id) != str(caller_id):
        raise AuthorizationError("Not authorized to add expenses to this group", Reason.NOT_AUTHORIZED)

    members = [m.strip() for m in group.members]
    paid_by = str(proposed["paid_by"]).strip()
    if paid_by not in members:
        raise ValidationError("Payer must be a member of the group", Reason.PAYER_NOT_MEMBER, [paid_by])

    names = [str(p).strip() for p in participants]
    outsiders = [p for p in names if p not in members]
    if outsiders:
        raise ValidationError(
            f"Participants not in group: {', '.join(outsiders)}",
            Reason.PARTICIPANTS_NOT_MEMBERS,
            outsiders,
        )

    return {
        "description": str(proposed["description"]).strip(),
        "amount": amount,
        "paid_by": paid_by,
        "participants": names,
        "date": str(proposed["date"]).strip(),
    }


def clean_members(members) -> List[str]:
    # blank entries are dropped, not rejected
    return [str(m).strip() for m in members or [] if str(m).strip()]


def validate_group(name, description, members) -> dict:
    name = name.strip() if isinstance(name, str) else ""
    if not name or len(name) > GROUP_NAME_MAX:
        raise ValidationError(
            f"Group name is required and must be at most {GROUP_NAME_MAX} characters",
            Reason.INVALID_GROUP_NAME,
        )

    description = str(description).strip() if description is not None else ""
    if len(description) > GROUP_DESCRIPTION_MAX:
        raise ValidationError(
            f"Description must be at most {GROUP_DESCRIPTION_MAX} characters",
            Reason.INVALID_DESCRIPTION,
        )

    if not isinstance(members, (list, tuple)):
        members = []
    cleaned = clean_members(members)
    if not cleaned:
        raise ValidationError("At least one member is required", Reason.NO_VALID_MEMBERS)

    return {"name": name, "description": description, "members": cleaned}
