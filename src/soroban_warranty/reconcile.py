"""Reconcile a signer's output with the transaction we assembled.

Two paths:

PARSED  The standard envelope parser accepts the signer's output. The parsed
        envelope already carries operation, auth entries and signature, and is
        submitted as-is.

MANUAL  The standard parser rejects the output with a union-variant error
        (an arm or enum value it has no branch for), or the envelope announces
        ENVELOPE_TYPE_SCPVALUE. We read the envelope's discriminant ourselves,
        pull the first signature out of the matching XDR shape (v0 or v1), and
        append it to the envelope we assembled, which is the only copy whose
        auth entries we can trust.

Anything else is an EnvelopeFormatError. No path ever invents a signature.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Callable

from stellar_sdk import DecoratedSignature, TransactionEnvelope, xdr
import xdrlib3
from xdrlib3 import Unpacker

from soroban_warranty import codec
from soroban_warranty.assemble import operation_payload
from soroban_warranty.constants import EnvelopeType
from soroban_warranty.errors import (
    EnvelopeFormatError,
    ReconciliationError,
    is_union_variant_error,
)

log = logging.getLogger("soroban_warranty.reconcile")

MAX_SIGNATURES = 20  # DecoratedSignature signatures<20>

EnvelopeParser = Callable[[str, str], TransactionEnvelope]


class ReconcilePath(StrEnum):
    PARSED = auto()
    MANUAL = auto()


@dataclass(frozen=True, slots=True)
class Reconciled:
    envelope: TransactionEnvelope
    path: ReconcilePath


def reconcile(
    assembled: TransactionEnvelope,
    signed_xdr: str,
    network_passphrase: str,
    *,
    method: str | None = None,
    parse: EnvelopeParser = codec.envelope_from_xdr,
) -> Reconciled:
    try:
        parsed = parse(signed_xdr, network_passphrase)
    except Exception as e:
        if not (is_union_variant_error(e) or peek_discriminant(signed_xdr) == EnvelopeType.SCPVALUE):
            log.error("Failed to parse signed envelope: %s", e)
            raise EnvelopeFormatError(
                f"Failed to parse signed transaction: {e}", method=method, detail=e
            ) from e
        log.warning("Signed envelope uses an unsupported union variant (%s), applying signature manually", e)
        try:
            signature = extract_signature(signed_xdr)
        except ReconciliationError as re_err:
            raise ReconciliationError(
                f"Failed to extract signature from Soroban envelope: {re_err.message}. Original error: {e}",
                method=method,
                detail=re_err.detail,
            ) from e
        before = len(assembled.signatures)
        assembled.signatures.append(signature)
        log.info("Signature applied to assembled transaction (%d -> %d)", before, len(assembled.signatures))
        return Reconciled(envelope=assembled, path=ReconcilePath.MANUAL)

    if not parsed.signatures:
        raise ReconciliationError("Signer returned an envelope without signatures", method=method)
    if operation_payload(parsed) != operation_payload(assembled):
        raise ReconciliationError("Signer returned a different transaction than the one assembled", method=method)
    log.info("Parsed signed transaction: %d signature(s)", len(parsed.signatures))
    return Reconciled(envelope=parsed, path=ReconcilePath.PARSED)


def envelope_discriminant(raw: bytes) -> int:
    try:
        return Unpacker(raw).unpack_int()
    except EOFError:
        raise ReconciliationError(f"Envelope too short ({len(raw)} bytes)") from None


def peek_discriminant(signed_xdr: str) -> int | None:
    """Envelope type of a base64 envelope, or None when it cannot even be read."""
    try:
        return envelope_discriminant(base64.b64decode(signed_xdr, validate=True))
    except (binascii.Error, ValueError, ReconciliationError):
        return None


def extract_signature(signed_xdr: str) -> DecoratedSignature:
    """First signature of the signer's envelope, found by the envelope's own discriminant."""
    try:
        raw = base64.b64decode(signed_xdr, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReconciliationError(f"Signed envelope is not base64: {e}") from e

    disc = envelope_discriminant(raw)
    if disc not in (EnvelopeType.TX, EnvelopeType.TX_V0):
        name = EnvelopeType(disc).name if disc in EnvelopeType._value2member_map_ else "unknown"
        raise ReconciliationError(f"Unsupported envelope type {name} ({disc})")

    kind = EnvelopeType(disc).name
    log.debug("Processing %s envelope", kind)
    try:
        env = xdr.TransactionEnvelope.from_xdr_bytes(raw)
    except (ValueError, EOFError, xdrlib3.Error) as e:
        raise ReconciliationError(f"Unreadable {kind} envelope: {e}", detail=e) from e

    signatures = env.v1.signatures if disc == EnvelopeType.TX else env.v0.signatures
    if len(signatures) > MAX_SIGNATURES:
        raise ReconciliationError(f"Signature count {len(signatures)} exceeds {MAX_SIGNATURES}")
    if not signatures:
        raise ReconciliationError(f"No signatures found in {kind} envelope")
    return DecoratedSignature.from_xdr_object(signatures[0])
