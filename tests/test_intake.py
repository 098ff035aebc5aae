"""
Tests for expense and group intake

Tests cover:
- Each rejection reason, in check order
- Normalization of accepted expenses and groups
"""

from decimal import Decimal

import pytest

from errors import AuthorizationError, Reason, ValidationError
from intake import validate_expense, validate_group
from schemas import Group


@pytest.fixture
def group() -> Group:
    return Group(name="Bali Trip", owner_id="owner-1", members=["Alice", " Bob ", "Charlie"])


def proposal(**overrides) -> dict:
    data = {
        "description": " Hotel booking ",
        "amount": 450.0,
        "paid_by": "Alice",
        "participants": ["Alice", "Bob", "Charlie"],
        "date": "2024-01-15",
    }
    data.update(overrides)
    return data


class TestValidateExpense:
    def test_accepts_and_normalizes(self, group):
        result = validate_expense(group, proposal(paid_by=" Alice", participants=["Bob ", "Charlie"]), "owner-1")

        assert result == {
            "description": "Hotel booking",
            "amount": Decimal("450.0"),
            "paid_by": "Alice",
            "participants": ["Bob", "Charlie"],
            "date": "2024-01-15",
        }

    def test_amount_string_is_coerced(self, group):
        result = validate_expense(group, proposal(amount="12.50"), "owner-1")

        assert result["amount"] == Decimal("12.50")

    @pytest.mark.parametrize("field", ["description", "amount", "paid_by", "participants", "date"])
    def test_missing_field(self, group, field):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(**{field: None}), "owner-1")

        assert exc.value.reason == Reason.MISSING_FIELDS
        assert field in exc.value.details

    def test_blank_description_is_missing(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(description="   "), "owner-1")

        assert exc.value.reason == Reason.MISSING_FIELDS

    def test_empty_participants(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(participants=[]), "owner-1")

        assert exc.value.reason == Reason.NO_PARTICIPANTS

    @pytest.mark.parametrize("amount", [0, -5, "-0.01", "abc"])
    def test_non_positive_amount(self, group, amount):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(amount=amount), "owner-1")

        assert exc.value.reason == Reason.NON_POSITIVE_AMOUNT

    def test_not_owner(self, group):
        with pytest.raises(AuthorizationError) as exc:
            validate_expense(group, proposal(), "someone-else")

        assert exc.value.reason == Reason.NOT_AUTHORIZED
        assert exc.value.status_code == 403

    def test_payer_not_member(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(paid_by="Z"), "owner-1")

        assert exc.value.reason == Reason.PAYER_NOT_MEMBER

    def test_participants_not_members_lists_offenders(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(participants=["Alice", "Dave", "Eve"]), "owner-1")

        assert exc.value.reason == Reason.PARTICIPANTS_NOT_MEMBERS
        assert exc.value.details == ["Dave", "Eve"]

    def test_checks_run_in_order(self, group):
        # non-owner with a bad payer and a zero amount: the amount check comes first
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(amount=0, paid_by="Z"), "someone-else")

        assert exc.value.reason == Reason.NON_POSITIVE_AMOUNT


class TestValidateGroup:
    def test_trims_and_drops_blank_members(self):
        result = validate_group("  Roommates ", None, ["Alice", "  ", "", " Bob "])

        assert result == {"name": "Roommates", "description": "", "members": ["Alice", "Bob"]}

    @pytest.mark.parametrize("name", [None, "", "   ", "x" * 101])
    def test_invalid_name(self, name):
        with pytest.raises(ValidationError) as exc:
            validate_group(name, "", ["Alice"])

        assert exc.value.reason == Reason.INVALID_GROUP_NAME

    def test_description_too_long(self):
        with pytest.raises(ValidationError) as exc:
            validate_group("Trip", "d" * 501, ["Alice"])

        assert exc.value.reason == Reason.INVALID_DESCRIPTION

    @pytest.mark.parametrize("members", [None, [], ["", "  "]])
    def test_no_valid_members(self, members):
        with pytest.raises(ValidationError) as exc:
            validate_group("Trip", "", members)

        assert exc.value.reason == Reason.NO_VALID_MEMBERS


class TestAmountRange:
    @pytest.mark.parametrize("amount", ["1e400", "1e308", "1000000000000.01"])
    def test_too_large(self, group, amount):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(amount=amount), "owner-1")

        assert exc.value.reason == Reason.AMOUNT_OUT_OF_RANGE

    def test_too_many_significant_digits(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(amount="1.0000000000000000000000000000000001"), "owner-1")

        assert exc.value.reason == Reason.AMOUNT_OUT_OF_RANGE

    def test_upper_bound_and_trailing_zeros_accepted(self, group):
        assert validate_expense(group, proposal(amount="1000000000000"), "owner-1")["amount"] == Decimal("1e12")
        assert validate_expense(group, proposal(amount="5." + "0" * 40), "owner-1")["amount"] == 5

    def test_bare_string_participants(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(participants="Alice"), "owner-1")

        assert exc.value.reason == Reason.NO_PARTICIPANTS

    def test_non_string_payer_is_compared_as_text(self, group):
        with pytest.raises(ValidationError) as exc:
            validate_expense(group, proposal(paid_by=42), "owner-1")

        assert exc.value.reason == Reason.PAYER_NOT_MEMBER
        assert exc.value.details == ["42"]
