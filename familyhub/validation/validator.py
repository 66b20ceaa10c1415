"""
Transfer Validation

DESIGN DECISION: A transfer is checked in two stages BEFORE any
remote write happens:

STAGE 1 - INPUT VALIDATION:
- Amount is a positive decimal with at most two decimal places
- Source and destination differ

STAGE 2 - MIRROR VALIDATION:
- Both members are known to the mirror
- Sender's balance going negative is reported as a warning only
  (balances are allowed to go negative)

IMPORTANT: Errors stop the transfer. Warnings never do.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from familyhub.models.member import FamilyMember

CENT = Decimal("0.01")


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'unknown_member')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationError(ValueError):
    """
    Malformed input, rejected before any remote write.

    `issues` holds every error found; str(error) is the first message.
    """

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


def parse_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    """
    Parse a user-entered amount.

    Floats go through str() so that 0.1 stays 0.1.
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(
            f"Invalid amount: {amount!r}",
            [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Invalid amount: {amount!r}",
                severity="error",
            )],
        )
    if not value.is_finite():
        raise ValidationError(
            "Amount must be a finite number",
            [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a finite number",
                severity="error",
            )],
        )
    return value


def parse_member_id(value: Union[UUID, str], field: str) -> UUID:
    """Parse a member id coming from a form or a route parameter."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid member id: {value!r}",
            [ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"Invalid member id: {value!r}",
                severity="error",
            )],
        )


class TransferValidator:
    """Validates a transfer against its input and the current mirror."""

    def _validate_input(
        self,
        from_id: UUID,
        to_id: UUID,
        amount: Decimal,
    ) -> list[ValidationIssue]:
        issues = []

        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        elif amount != amount.quantize(CENT):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount cannot have more than two decimal places",
                severity="error",
            ))

        if from_id == to_id:
            issues.append(ValidationIssue(
                field="to_id",
                issue_type="self_transfer",
                message="Cannot transfer money to the same member",
                severity="error",
            ))

        return issues

    def _validate_against_mirror(
        self,
        from_id: UUID,
        to_id: UUID,
        amount: Decimal,
        members: Iterable[FamilyMember],
    ) -> list[ValidationIssue]:
        by_id = {member.id: member for member in members}
        issues = []

        for field, member_id in (("from_id", from_id), ("to_id", to_id)):
            if member_id not in by_id:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="unknown_member",
                    message=f"Member {member_id} is not loaded",
                    severity="error",
                ))

        sender = by_id.get(from_id)
        if sender is not None and sender.balance - amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative_balance",
                message=f"{sender.name}'s balance will go negative",
                severity="warning",
            ))

        return issues

    def validate(
        self,
        from_id: UUID,
        to_id: UUID,
        amount: Union[Decimal, int, float, str],
        members: Iterable[FamilyMember],
    ) -> list[ValidationIssue]:
        """
        Run both stages.

        Returns:
            The warnings found (possibly empty)

        Raises:
            ValidationError: If any error was found
        """
        value = parse_amount(amount)

        issues = self._validate_input(from_id, to_id, value)
        # Mirror checks only make sense for well-formed input
        if not issues:
            issues.extend(self._validate_against_mirror(from_id, to_id, value, members))

        errors = [issue for issue in issues if issue.severity == "error"]
        if errors:
            raise ValidationError(errors[0].message, errors)

        return [issue for issue in issues if issue.severity == "warning"]
