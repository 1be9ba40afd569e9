# Domain errors for Collabzz
# Each error carries a stable machine-readable code next to the message.

from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    """Base class for domain errors returned as {"detail", "code"}."""
    code = "marketplace_error"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, status_code: int = None):
        super().__init__(status_code=status_code or self.default_status, detail=detail)


class InvalidTransitionError(MarketplaceError):
    code = "invalid_transition"
    default_status = status.HTTP_409_CONFLICT


class ConcurrentUpdateError(MarketplaceError):
    code = "concurrent_update"
    default_status = status.HTTP_409_CONFLICT


class PaymentRequiredError(MarketplaceError):
    code = "payment_required"
    default_status = status.HTTP_409_CONFLICT


class CollaborationLimitError(MarketplaceError):
    code = "collaboration_limit"
    default_status = status.HTTP_403_FORBIDDEN


class KycRequiredError(MarketplaceError):
    code = "kyc_required"
    default_status = status.HTTP_403_FORBIDDEN


class ValidationFailedError(MarketplaceError):
    code = "validation_error"
    default_status = 422


class PaymentGatewayError(MarketplaceError):
    code = "payment_gateway_error"
    default_status = status.HTTP_502_BAD_GATEWAY
