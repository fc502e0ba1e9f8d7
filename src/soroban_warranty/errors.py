"""Error taxonomy for contract invocations and the classifier that maps raw payloads onto it.

Every failure that leaves the pipeline is one of the classes below. Each keeps the
original payload (stringified) in ``detail`` so it can be diagnosed later, while
``str(err)`` carries the message meant for the caller.
"""

import json
import re
from typing import Any

from soroban_warranty.constants import Method


class WarrantyClientError(Exception):
    """Base class for all classified failures."""

    def __init__(self, message: str, *, method: str | None = None, detail: Any = None):
        self.message = message
        self.method = method
        self.detail = _stringify(detail) if detail is not None else None
        super().__init__(message)


class TransportError(WarrantyClientError):
    """Network unreachable, timed out, or answered with a non-JSON-RPC response."""


class ValidationError(WarrantyClientError):
    """Request rejected locally, before any network call."""


class InvalidAddressError(ValidationError):
    pass


class AuthorizationMismatchError(ValidationError):
    pass


class DateOrderError(ValidationError):
    pass


class InvalidArgumentError(ValidationError):
    pass


class SimulationError(WarrantyClientError):
    """The ledger refused to simulate the invocation."""


class ContractPanic(SimulationError):
    """Contract code aborted during simulation."""


class EncodingLimitation(SimulationError):
    """An argument encoding the host cannot convert for this method."""


class SimulationMalformed(SimulationError):
    """Simulation failed without a recognisable cause, or answered with an unusable result."""


class AssemblyError(WarrantyClientError):
    """Authorization entries or resource data from simulation could not be merged."""


class SigningError(WarrantyClientError):
    """The external signer returned an error or nothing at all."""


class EnvelopeFormatError(WarrantyClientError):
    """The signed envelope could not be parsed."""


class ReconciliationError(EnvelopeFormatError):
    """The fallback envelope path could not recover a signature."""


class SubmissionRejected(WarrantyClientError):
    """The network refused the signed transaction."""


class ExtractionAmbiguous(WarrantyClientError):
    """A return value was present but did not decode to the expected type."""


# Host error strings are of the form "HostError: Error(WasmVm, InvalidAction)"
PANIC_MARKERS = (
    "Error(WasmVm, InvalidAction)",
    "UnreachableCodeReached",
    "panicked",
    "Error(Context, InvalidAction)",
    "Error(Auth, InvalidAction)",
)

ENCODING_LIMITATION_MARKERS = (
    "Error(Value, UnexpectedType)",
    "UnexpectedType",
    "Error(Value, InvalidInput)",
)

# Methods whose arguments can hit a host conversion failure, and what to do instead
ENCODING_LIMITED = {
    Method.UPDATE_STATUS: (
        "The status argument could not be converted by the contract host. "
        f"Use {Method.REVOKE_WARRANTY} to revoke a warranty instead of update_status."
    ),
}

NOT_FOUND_OR_NOT_OWNER = {
    Method.REVOKE_WARRANTY: "Warranty not found or you are not the owner. Only the current owner can revoke it.",
    Method.TRANSFER_OWNERSHIP: (
        "Warranty not found or you are not the owner. "
        "Only the current owner can transfer an active warranty."
    ),
}

# stellar_sdk xdr: "Invalid type." for a union arm it has no branch for,
# "<n> is not a valid <Enum>" for a discriminant value it does not know.
# The JS stack words the same failures as "Bad union switch: 4".
_UNION_VARIANT = re.compile(
    r"^Invalid type\.$|\b\d+ is not a valid \w+|bad union switch|switch:\s*4\b|ENVELOPE_TYPE_SCPVALUE",
    re.I,
)


def _stringify(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, BaseException):
        return f"{payload.__class__.__name__}: {payload}"
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return repr(payload)


def classify_simulation_failure(method: str, payload: Any) -> SimulationError:
    """Turn a simulation ``error`` payload into a refined SimulationError."""
    text = _stringify(payload)

    if method in ENCODING_LIMITED and any(m in text for m in ENCODING_LIMITATION_MARKERS):
        return EncodingLimitation(ENCODING_LIMITED[method], method=method, detail=payload)

    if any(m in text for m in PANIC_MARKERS):
        guidance = NOT_FOUND_OR_NOT_OWNER.get(method)
        if guidance:
            return ContractPanic(guidance, method=method, detail=payload)
        return ContractPanic(
            f"Contract rejected {method}: invalid input or access denied ({text})",
            method=method,
            detail=payload,
        )

    return SimulationMalformed(f"Transaction simulation failed: {text}", method=method, detail=payload)


def is_union_variant_error(exc: BaseException) -> bool:
    """True when a parse failure comes from a union arm or enum value the parser cannot handle."""
    return bool(_UNION_VARIANT.search(str(exc)))
