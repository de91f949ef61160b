from __future__ import annotations

from uuid import UUID


class PartnerError(Exception):
    pass


class PartnerValidationError(PartnerError):
    pass


class PartnerAdValidationError(PartnerValidationError):
    pass


class PartnerSlotInvalidError(PartnerValidationError):
    pass


class PartnerRequestNoteInvalidError(PartnerValidationError):
    pass


class PartnerPriceInvalidError(PartnerValidationError):
    pass


class PartnerRejectionReasonRequiredError(PartnerValidationError):
    pass


class PartnerSlotOverridesInvalidError(PartnerValidationError):
    pass


class PartnerSlotUnavailableError(PartnerError):
    pass


class PartnerAdNotFoundError(PartnerError):
    pass


class PartnerBookingNotFoundError(PartnerError):
    pass


class PartnerBookingProviderMismatchError(PartnerError):
    pass


class PartnerBookingStateError(PartnerError):
    pass


class PartnerPaymentReferenceMismatchError(PartnerError):
    pass


class PartnerPaymentNotCompletedError(PartnerError):
    pass


class PartnerPaidAfterReleaseError(PartnerBookingStateError):
    """Stripe collected money for a booking whose slot was already released."""

    def __init__(self, *, booking_id: UUID, session_id: str, payment_intent_id: str | None) -> None:
        super().__init__("CANCELED")
        self.booking_id = booking_id
        self.session_id = session_id
        self.payment_intent_id = payment_intent_id
