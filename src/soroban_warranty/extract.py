import logging
from typing import Any

from stellar_sdk import xdr

from soroban_warranty import codec
from soroban_warranty.constants import RETURN_TYPES
from soroban_warranty.errors import ExtractionAmbiguous
from soroban_warranty.models import InvocationResult, ResultKind, SimulationSuccess

log = logging.getLogger("soroban_warranty.extract")


def decode_retval(retval: Any, method: str) -> Any:
    """Native value of a simulation retval in any of the encodings the RPC may use.

    1. an ``xdr.SCVal`` already decoded by the transport
    2. a base64 XDR string
    3. a structured (JSON) rendering, converted generically
    When the method has a known return type the value is re-encoded into it,
    which also rejects values of the wrong shape.
    """
    expected = RETURN_TYPES.get(method)
    try:
        if isinstance(retval, xdr.SCVal):
            native = codec.to_native(retval)
        elif isinstance(retval, str):
            native = codec.to_native(codec.scval_from_base64(retval))
        elif isinstance(retval, dict):
            native = codec.json_to_native(retval)
        else:
            raise ValueError(f"Unexpected simulation result type: {type(retval).__name__}")

        if expected and native is not None:
            native = codec.to_native(codec.encode_native(native, expected))
    except Exception as e:
        raise ExtractionAmbiguous(
            f"Cannot decode {method} return value: {e}", method=method, detail=retval
        ) from e
    return native


def extract_result(
    method: str,
    sim: SimulationSuccess,
    *,
    tx_hash: str | None = None,
    status: str | None = None,
) -> InvocationResult:
    """Result of a submitted invocation, taken from the simulation captured before signing.

    Never raises: the transaction is already on its way, so a value that cannot
    be decoded degrades the result instead of failing the call.
    """
    if sim.retval is None:
        log.warning("No result in simulation response for %s (write-only call). hash=%s", method, tx_hash)
        return InvocationResult(True, ResultKind.NO_RETURN, tx_hash=tx_hash, status=status)

    try:
        value = decode_retval(sim.retval, method)
    except ExtractionAmbiguous as e:
        log.warning("Cannot extract result, but transaction was submitted (%s). Returning degraded result.", e.message)
        return InvocationResult(True, ResultKind.DEGRADED, tx_hash=tx_hash, status=status, detail=e.message)

    if value is None:
        return InvocationResult(True, ResultKind.NO_RETURN, tx_hash=tx_hash, status=status)
    log.info("Extracted %s result from simulation: %r", method, value)
    return InvocationResult(value, ResultKind.VALUE, tx_hash=tx_hash, status=status)
