from enum import Enum


class PaymentStatus(str, Enum):
    """
    Provider-agnostic payment status.

    Every provider adapter maps its native status vocabulary into this enum
    at its boundary. Nothing outside payment/ ever sees a provider status.
    """

    PENDING = "pending"          # Created, waiting for customer action
    PROCESSING = "processing"    # Submitted, provider has not settled yet
    COMPLETED = "completed"      # Funds captured
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
