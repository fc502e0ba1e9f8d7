import logging
import time
from dataclasses import dataclass
from typing import Callable, Any

from stellar_sdk import Account, TransactionBuilder, TransactionEnvelope, xdr

import soroban_warranty.constants as C
from soroban_warranty import codec
from soroban_warranty.constants import Method, WarrantyStatus
from soroban_warranty.errors import (
    AuthorizationMismatchError,
    DateOrderError,
    InvalidAddressError,
    InvalidArgumentError,
)
from soroban_warranty.models import InvocationRequest

log = logging.getLogger("soroban_warranty.txn")


@dataclass(frozen=True)
class MethodSpec:
    method: Method
    encoder: Callable[..., tuple[xdr.SCVal, ...]]
    read_only: bool
    needs_signer: bool


REGISTRY: dict[str, MethodSpec] = {}


def register_method(method: Method, *, read_only: bool = False, needs_signer: bool = False):
    """
    Decorator to register an argument encoder against a contract method.
    Encoders validate their inputs and raise ValidationError subclasses, so a bad
    request fails before any network round trip.
    """
    def wrap(fn: Callable[..., tuple[xdr.SCVal, ...]]):
        REGISTRY[method] = MethodSpec(method=method, encoder=fn, read_only=read_only, needs_signer=needs_signer)
        return fn
    return wrap


def require_account(address: str | None, what: str) -> str:
    if not codec.is_valid_account(address):
        raise InvalidAddressError(
            f"Invalid {what} address {address!r}. Address must start with G and be 56 characters long."
        )
    return address


def parse_warranty_id(warranty_id: int | str) -> int:
    try:
        n = int(str(warranty_id).strip())
    except ValueError:
        raise InvalidArgumentError(f"Warranty id must be an integer, got {warranty_id!r}") from None
    if not 0 <= n <= codec.U64_MAX:
        raise InvalidArgumentError(f"Warranty id {warranty_id!r} is out of range")
    return n


@register_method(Method.REGISTER_WARRANTY, needs_signer=True)
def encode_register_warranty(
    owner: str,
    product_name: str,
    serial_number: str,
    manufacturer: str,
    purchase_date,
    expiration_date,
    *,
    signer: str,
    now: int | None = None,
) -> tuple[xdr.SCVal, ...]:
    require_account(owner, "owner")
    require_account(signer, "signer")
    if owner != signer:
        raise AuthorizationMismatchError(
            "Owner address must match the signer address. "
            "The contract requires the owner to authorize the transaction."
        )
    try:
        purchase = codec.to_timestamp(purchase_date)
        expiration = codec.to_timestamp(expiration_date)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Unreadable date: {e}") from e

    if expiration <= purchase:
        raise DateOrderError("Expiration date must be after purchase date.")
    if purchase > (now if now is not None else int(time.time())):
        raise DateOrderError("Purchase date cannot be in the future.")

    return (
        codec.encode_address(owner),
        codec.encode_string(product_name),
        codec.encode_string(serial_number),
        codec.encode_string(manufacturer),
        codec.encode_u64(purchase),
        codec.encode_u64(expiration),
    )


@register_method(Method.GET_WARRANTY, read_only=True)
def encode_get_warranty(warranty_id) -> tuple[xdr.SCVal, ...]:
    return (codec.encode_u64(parse_warranty_id(warranty_id)),)


@register_method(Method.IS_WARRANTY_EXPIRED, read_only=True)
def encode_is_warranty_expired(warranty_id) -> tuple[xdr.SCVal, ...]:
    return (codec.encode_u64(parse_warranty_id(warranty_id)),)


@register_method(Method.GET_WARRANTIES_BY_OWNER, read_only=True)
def encode_get_warranties_by_owner(owner: str) -> tuple[xdr.SCVal, ...]:
    return (codec.encode_address(require_account(owner, "owner")),)


@register_method(Method.GET_WARRANTY_COUNT, read_only=True)
def encode_get_warranty_count() -> tuple[xdr.SCVal, ...]:
    return ()


@register_method(Method.UPDATE_STATUS)
def encode_update_status(warranty_id, status) -> tuple[xdr.SCVal, ...]:
    try:
        status = WarrantyStatus(status)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown status {status!r}; expected one of {', '.join(s.value for s in WarrantyStatus)}"
        ) from None
    return (codec.encode_u64(parse_warranty_id(warranty_id)), codec.encode_status(status))


@register_method(Method.TRANSFER_OWNERSHIP)
def encode_transfer_ownership(warranty_id, new_owner: str) -> tuple[xdr.SCVal, ...]:
    require_account(new_owner, "new owner")
    return (codec.encode_u64(parse_warranty_id(warranty_id)), codec.encode_address(new_owner))


@register_method(Method.REVOKE_WARRANTY)
def encode_revoke_warranty(warranty_id) -> tuple[xdr.SCVal, ...]:
    return (codec.encode_u64(parse_warranty_id(warranty_id)),)


def build_request(method: str, *args: Any, signer: str | None = None, **kwargs: Any) -> InvocationRequest:
    spec = REGISTRY.get(method)
    if not spec:
        raise ValueError(f"Unsupported contract method: {method!r}")
    if not spec.read_only:
        require_account(signer, "signer")
    if spec.needs_signer:
        kwargs["signer"] = signer
    encoded = spec.encoder(*args, **kwargs)
    log.debug("Encoded %s with %d args", method, len(encoded))
    return InvocationRequest(method=spec.method, args=encoded, signer=signer)


def placeholder_source() -> Account:
    return Account(C.PLACEHOLDER_ACCOUNT, C.PLACEHOLDER_SEQUENCE)


def build_invocation(
    request: InvocationRequest,
    source: Account,
    *,
    contract_id: str,
    network_passphrase: str,
    base_fee: int = C.DEFAULT_BASE_FEE,
    timeout: int | None = None,
) -> TransactionEnvelope:
    """Unsigned envelope holding exactly one contract call."""
    # build() bumps the sequence on the Account it is given; keep the caller's snapshot intact
    snapshot = Account(source.account.account_id, source.sequence)
    builder = (
        TransactionBuilder(snapshot, network_passphrase, base_fee=base_fee)
        .append_invoke_contract_function_op(
            contract_id=contract_id,
            function_name=str(request.method),
            parameters=list(request.args),
        )
    )
    if timeout is None:
        builder.add_time_bounds(0, 0)
    else:
        builder.set_timeout(timeout)
    envelope = builder.build()
    log.info(
        "Transaction built: method=%s source=%s seq=%s fee=%s",
        request.method, source.account.account_id, envelope.transaction.sequence, envelope.transaction.fee,
    )
    return envelope
