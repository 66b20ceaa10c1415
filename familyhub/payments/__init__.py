"""Payments package: gateway checkout and payment proofs."""

from familyhub.payments.checkout import (
    PaymentCheckout,
    PaymentReconciliationError,
    to_minor_units,
)
from familyhub.payments.proof import PaymentProofFlow

__all__ = [
    "PaymentCheckout",
    "PaymentProofFlow",
    "PaymentReconciliationError",
    "to_minor_units",
]
