"""
Tests for transfer validation
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from familyhub.models import FamilyMember
from familyhub.validation import (
    TransferValidator,
    ValidationError,
    parse_amount,
    parse_member_id,
)


@pytest.fixture
def members():
    return [
        FamilyMember(
            id=uuid4(), user_id=uuid4(), name=name, relation="Sibling",
            date_of_birth=date(1995, 5, 5), gender="female", balance=Decimal(balance),
        )
        for name, balance in (("Asha", "50"), ("Ravi", "0"))
    ]


class TestParseAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw, expected", [
        ("100", Decimal("100")),
        (" 12.50 ", Decimal("12.50")),
        (0.1, Decimal("0.1")),
        (7, Decimal("7")),
    ])
    def test_parses(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity"])
    def test_rejects_garbage(self, raw):
        with pytest.raises(ValidationError):
            parse_amount(raw)


class TestTransferValidator:
    """Tests for the two validation stages."""

    def test_valid_transfer_has_no_issues(self, members):
        asha, ravi = members
        assert TransferValidator().validate(asha.id, ravi.id, "20", members) == []

    def test_negative_balance_is_only_a_warning(self, members):
        asha, ravi = members

        warnings = TransferValidator().validate(asha.id, ravi.id, "80", members)

        assert [w.issue_type for w in warnings] == ["negative_balance"]
        assert warnings[0].severity == "warning"

    @pytest.mark.parametrize("amount", ["0", "-1", "0.001"])
    def test_bad_amounts(self, members, amount):
        asha, ravi = members
        with pytest.raises(ValidationError) as exc_info:
            TransferValidator().validate(asha.id, ravi.id, amount, members)
        assert exc_info.value.issues[0].field == "amount"

    def test_self_transfer(self, members):
        asha, _ = members
        with pytest.raises(ValidationError) as exc_info:
            TransferValidator().validate(asha.id, asha.id, "1", members)
        assert exc_info.value.issues[0].issue_type == "self_transfer"

    def test_unknown_members_are_all_reported(self, members):
        with pytest.raises(ValidationError) as exc_info:
            TransferValidator().validate(uuid4(), uuid4(), "1", members)
        assert [i.field for i in exc_info.value.issues] == ["from_id", "to_id"]

    def test_validation_error_is_a_value_error(self):
        assert issubclass(ValidationError, ValueError)

    @pytest.mark.parametrize("amount", ["10.000", "10.50", Decimal("7.1000")])
    def test_trailing_zeros_are_not_extra_decimals(self, members, amount):
        asha, ravi = members
        assert TransferValidator().validate(asha.id, ravi.id, amount, members) == []


class TestParseMemberId:
    """Tests for member id parsing."""

    def test_accepts_uuid_and_string(self):
        member_id = uuid4()
        assert parse_member_id(member_id, "from_id") is member_id
        assert parse_member_id(f" {member_id} ", "from_id") == member_id

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_member_id("42", "to_id")
        assert exc_info.value.issues[0].field == "to_id"
        assert exc_info.value.issues[0].issue_type == "invalid_format"
