"""
Gateway Checkout

DESIGN DECISION: The gateway widget runs on the client and only hands
us a confirmation (payment id). We never talk to the gateway API; the
payment id is folded into the transfer description so the transfer
can be traced back to the gateway payment.

CRITICAL: Once the gateway has taken the money, a failing transfer
must NOT look like a failed payment. It is re-raised as
PaymentReconciliationError so the caller can tell the user the
payment went through and the ledger needs fixing.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

import structlog

from familyhub.audit import AuditLogger
from familyhub.config import PaymentGatewaySettings, get_settings
from familyhub.models.finance import CheckoutOptions, PaymentConfirmation, Transaction
from familyhub.models.member import FamilyMember
from familyhub.store import FamilyStore
from familyhub.validation import ValidationError, parse_amount


logger = structlog.get_logger(__name__)

GATEWAY_DESCRIPTION_PREFIX = "Razorpay Payment: "


class PaymentReconciliationError(Exception):
    """The gateway payment succeeded but the transfer was not recorded."""

    def __init__(self, payment_id: str, cause: BaseException):
        self.payment_id = payment_id
        self.cause = cause
        super().__init__(
            f"Payment {payment_id} succeeded but the transfer failed: {cause}"
        )


def to_minor_units(amount: Decimal) -> int:
    """Rupees -> paise, rounded half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentCheckout:
    """Builds checkout widget options and records confirmed payments."""

    def __init__(
        self,
        settings: Optional[PaymentGatewaySettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().payments
        self._audit_logger = audit_logger

    def build_options(
        self,
        from_member: FamilyMember,
        to_member: FamilyMember,
        amount: Union[Decimal, int, str],
    ) -> CheckoutOptions:
        """
        Options for the checkout widget.

        Raises:
            ValidationError: If the amount is not positive or the members
                             are the same person
        """
        value = parse_amount(amount)
        if value <= 0:
            raise ValidationError("Amount must be greater than zero")
        if from_member.id == to_member.id:
            raise ValidationError("Cannot transfer money to the same member")

        return CheckoutOptions(
            key=self._settings.key_id,
            amount=to_minor_units(value),
            currency=self._settings.currency,
            name=self._settings.merchant_name,
            description=f"Transfer to {to_member.name}",
            prefill={"name": from_member.name},
            notes={"fromMember": from_member.name, "toMember": to_member.name},
            theme={"color": self._settings.theme_color},
        )

    async def complete(
        self,
        store: FamilyStore,
        from_member: FamilyMember,
        to_member: FamilyMember,
        amount: Union[Decimal, int, str],
        confirmation: PaymentConfirmation,
    ) -> Transaction:
        """
        Record a payment the gateway has confirmed as a transfer.

        Raises:
            PaymentReconciliationError: If the transfer failed in any way
        """
        payment_id = confirmation.razorpay_payment_id

        if self._audit_logger:
            await self._audit_logger.log_gateway_payment(
                payment_id, from_member.id, to_member.id, str(amount)
            )

        try:
            return await store.transfer_money(
                from_member.id,
                to_member.id,
                amount,
                description=f"{GATEWAY_DESCRIPTION_PREFIX}{payment_id}",
            )
        except Exception as e:
            logger.error(
                "gateway_payment_not_recorded",
                payment_id=payment_id,
                from_id=str(from_member.id),
                to_id=str(to_member.id),
                error=str(e),
            )
            raise PaymentReconciliationError(payment_id, e) from e
