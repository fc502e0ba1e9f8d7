from typing import Final
from enum import IntEnum, StrEnum

# All-zero ed25519 key. Never funded, only ever used as a simulation source.
PLACEHOLDER_ACCOUNT: Final = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"
PLACEHOLDER_SEQUENCE: Final = 0


class Method(StrEnum):
    REGISTER_WARRANTY       = "register_warranty"
    GET_WARRANTY            = "get_warranty"
    UPDATE_STATUS           = "update_status"
    TRANSFER_OWNERSHIP      = "transfer_ownership"
    REVOKE_WARRANTY         = "revoke_warranty"
    GET_WARRANTIES_BY_OWNER = "get_warranties_by_owner"
    GET_WARRANTY_COUNT      = "get_warranty_count"
    IS_WARRANTY_EXPIRED     = "is_warranty_expired"


class WarrantyStatus(StrEnum):
    ACTIVE  = "Active"
    EXPIRED = "Expired"
    REVOKED = "Revoked"


class EnvelopeType(IntEnum):
    """On-wire discriminants of the TransactionEnvelope union."""
    TX_V0     = 0
    SCP       = 1
    TX        = 2
    AUTH      = 3
    SCPVALUE  = 4
    TX_FEE_BUMP = 5


class SendStatus(StrEnum):
    PENDING         = "PENDING"
    DUPLICATE       = "DUPLICATE"
    TRY_AGAIN_LATER = "TRY_AGAIN_LATER"
    ERROR           = "ERROR"


class TxStatus(StrEnum):
    SUCCESS   = "SUCCESS"
    NOT_FOUND = "NOT_FOUND"
    FAILED    = "FAILED"


# Expected return type per method, used when the retval has to be re-encoded.
RETURN_TYPES: Final = {
    Method.REGISTER_WARRANTY: "u64",
    Method.GET_WARRANTY_COUNT: "u64",
    Method.IS_WARRANTY_EXPIRED: "bool",
}

DEFAULT_BASE_FEE = 100  # stroops
RPC_TIMEOUT = 30.0
CONFIRM_TIMEOUT = 30.0
CONFIRM_INTERVAL = 2.0
FETCH_CONCURRENCY = 4

__all__ = [
    "CONFIRM_INTERVAL",
    "CONFIRM_TIMEOUT",
    "DEFAULT_BASE_FEE",
    "FETCH_CONCURRENCY",
    "PLACEHOLDER_ACCOUNT",
    "PLACEHOLDER_SEQUENCE",
    "RETURN_TYPES",
    "RPC_TIMEOUT",

    ######
    "EnvelopeType",
    "Method",
    "SendStatus",
    "TxStatus",
    "WarrantyStatus",
]
