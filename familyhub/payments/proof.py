"""
Payment Proof Flow

Attaches proof to an existing transaction:
1. Upload the image (file or webcam screenshot), if there is one
2. Store its URL and/or the UTR number on the transaction

Nothing is written to the transaction if the upload fails.
"""

from typing import Optional, Union
from uuid import UUID

from familyhub.services.media import CloudinaryMediaStorage
from familyhub.store import FamilyStore
from familyhub.validation import ValidationError


class PaymentProofFlow:
    """Upload-then-attach for payment proofs."""

    def __init__(
        self,
        store: FamilyStore,
        media_storage: Optional[CloudinaryMediaStorage] = None,
    ):
        self._store = store
        self._media = media_storage or CloudinaryMediaStorage()

    async def submit(
        self,
        transaction_id: Union[UUID, str],
        image: Union[bytes, str, None] = None,
        utr_number: Optional[str] = None,
    ) -> Optional[str]:
        """
        Attach a proof image and/or UTR number to a transaction.

        Args:
            transaction_id: Transaction to update
            image: Image bytes or a base64 data URL
            utr_number: Bank/UPI reference

        Returns:
            Public URL of the uploaded proof, None if only a UTR was given

        Raises:
            ValidationError: If neither image nor UTR number was given
            MediaStorageError: If the image was rejected or the upload failed
        """
        utr_number = utr_number.strip() if utr_number else None
        if not image and not utr_number:
            raise ValidationError("Either a payment proof image or a UTR number is required")

        proof_url = None
        if image:
            uploaded = await self._media.upload_payment_proof(image)
            proof_url = uploaded.url

        await self._store.attach_payment_proof(
            transaction_id,
            proof_url=proof_url,
            utr_number=utr_number,
        )
        return proof_url
