"""Validation package."""

from familyhub.validation.validator import (
    TransferValidator,
    ValidationError,
    ValidationIssue,
    parse_amount,
    parse_member_id,
)

__all__ = [
    "TransferValidator",
    "ValidationError",
    "ValidationIssue",
    "parse_amount",
    "parse_member_id",
]
