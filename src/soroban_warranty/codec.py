"""Conversions between native Python values and Soroban wire values (SCVal),
plus base64 envelope (de)serialization.

Contract structs arrive as SCV_MAP with symbol keys, unit enum variants as a
one-element SCV_VEC holding the variant symbol. ``to_native`` flattens both into
plain dicts and lists; the warranty helpers at the bottom give them names.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any

from stellar_sdk import Address, StrKey, TransactionEnvelope, scval, xdr

from soroban_warranty.constants import WarrantyStatus
from soroban_warranty.models import WarrantyData

log = logging.getLogger("soroban_warranty.codec")

U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1

T = xdr.SCValType


def is_valid_account(address: str | None) -> bool:
    return bool(address) and StrKey.is_valid_ed25519_public_key(address)


def encode_u64(value: int | str) -> xdr.SCVal:
    n = int(value)
    if not 0 <= n <= U64_MAX:
        raise ValueError(f"{value!r} does not fit in u64")
    return scval.to_uint64(n)


def decode_u64(sc_val: xdr.SCVal) -> int:
    return scval.from_uint64(sc_val)


def encode_string(value: str) -> xdr.SCVal:
    return scval.to_string(value)


def encode_address(address: str) -> xdr.SCVal:
    return scval.to_address(Address(address))


def encode_status(status: WarrantyStatus) -> xdr.SCVal:
    # contracttype unit variant: vec![Symbol(name)]
    return scval.to_vec([scval.to_symbol(WarrantyStatus(status).value)])


def to_timestamp(value: int | str | date | datetime) -> int:
    """Unix seconds from an int, an ISO date/datetime string, or a date object.

    Naive values are taken as UTC, the way a bare ``YYYY-MM-DD`` is parsed by browsers.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a timestamp")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.isdigit():
            return int(value)
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def scval_from_base64(data: str) -> xdr.SCVal:
    return xdr.SCVal.from_xdr(data)


def envelope_to_xdr(envelope: TransactionEnvelope) -> str:
    return envelope.to_xdr()


def envelope_from_xdr(data: str, network_passphrase: str) -> TransactionEnvelope:
    return TransactionEnvelope.from_xdr(data, network_passphrase)


def to_native(sc_val: xdr.SCVal) -> Any:
    """Generic SCVal -> Python conversion."""
    t = sc_val.type
    if t == T.SCV_VOID:
        return None
    if t == T.SCV_BOOL:
        return scval.from_bool(sc_val)
    if t == T.SCV_U32:
        return scval.from_uint32(sc_val)
    if t == T.SCV_I32:
        return scval.from_int32(sc_val)
    if t == T.SCV_U64:
        return scval.from_uint64(sc_val)
    if t == T.SCV_I64:
        return scval.from_int64(sc_val)
    if t == T.SCV_U128:
        return scval.from_uint128(sc_val)
    if t == T.SCV_I128:
        return scval.from_int128(sc_val)
    if t == T.SCV_STRING:
        return scval.from_string(sc_val).decode("utf-8")
    if t == T.SCV_SYMBOL:
        return scval.from_symbol(sc_val)
    if t == T.SCV_BYTES:
        return scval.from_bytes(sc_val)
    if t == T.SCV_ADDRESS:
        return scval.from_address(sc_val).address
    if t == T.SCV_VEC:
        return [to_native(v) for v in (sc_val.vec.sc_vec if sc_val.vec else [])]
    if t == T.SCV_MAP:
        return {_map_key(to_native(e.key)): to_native(e.val) for e in (sc_val.map.sc_map if sc_val.map else [])}
    raise ValueError(f"Unsupported SCVal type {t.name}")


def _map_key(key: Any) -> Any:
    return tuple(key) if isinstance(key, list) else key


def _json_int(value: Any) -> int:
    # 128-bit values may come as {"hi": .., "lo": ..}
    if isinstance(value, dict) and {"hi", "lo"} <= value.keys():
        return (int(value["hi"]) << 64) + int(value["lo"])
    return int(value)


def json_to_native(obj: Any) -> Any:
    """Generic conversion of the JSON rendering of an SCVal (RPC ``xdrFormat=json``)."""
    if obj == "void" or obj is None:
        return None
    if not isinstance(obj, dict) or len(obj) != 1:
        raise ValueError(f"Not a JSON SCVal: {obj!r}")
    (kind, value), = obj.items()
    if kind == "bool":
        return bool(value)
    if kind in ("u32", "i32", "u64", "i64", "u128", "i128", "timepoint", "duration"):
        return _json_int(value)
    if kind in ("string", "symbol", "address"):
        return str(value)
    if kind == "bytes":
        return bytes.fromhex(value)
    if kind == "vec":
        return [json_to_native(v) for v in (value or [])]
    if kind == "map":
        return {_map_key(json_to_native(e["key"])): json_to_native(e["val"]) for e in (value or [])}
    raise ValueError(f"Unsupported JSON SCVal kind {kind!r}")


def encode_native(value: Any, type_name: str) -> xdr.SCVal:
    """Re-encode a generic native value into a specific wire type."""
    if isinstance(value, bool) and type_name != "bool":
        raise ValueError(f"{value!r} is not a {type_name}")
    match type_name:
        case "u64":
            return encode_u64(value)
        case "u32":
            n = int(value)
            if not 0 <= n <= U32_MAX:
                raise ValueError(f"{value!r} does not fit in u32")
            return scval.to_uint32(n)
        case "bool":
            if not isinstance(value, bool):
                raise ValueError(f"{value!r} is not a bool")
            return scval.to_bool(value)
        case "string":
            return scval.to_string(str(value))
        case _:
            raise ValueError(f"No re-encoding for type {type_name!r}")


def normalize_status(raw: Any) -> WarrantyStatus:
    """Accept the enum as symbol vec, bare name, or ordinal."""
    if isinstance(raw, (list, tuple)) and raw:
        raw = raw[0]
    if raw in (0, "0", "Active"):
        return WarrantyStatus.ACTIVE
    if raw in (1, "1", "Expired"):
        return WarrantyStatus.EXPIRED
    if raw in (2, "2", "Revoked"):
        return WarrantyStatus.REVOKED
    raise ValueError(f"Unknown warranty status {raw!r}")


def decode_warranty(native: dict, warranty_id: int | None = None) -> WarrantyData:
    def pick(*names, default=None):
        for n in names:
            if n in native and native[n] is not None:
                return native[n]
        return default

    return WarrantyData(
        id=int(pick("id", default=warranty_id)),
        owner=str(pick("owner", default="")),
        product_name=pick("product_name", "productName", default=""),
        serial_number=pick("serial_number", "serialNumber", default=""),
        manufacturer=pick("manufacturer", default=""),
        purchase_date=int(pick("purchase_date", "purchaseDate", default=0)),
        expiration_date=int(pick("expiration_date", "expirationDate", default=0)),
        status=normalize_status(pick("status")),
        created_at=int(pick("created_at", "createdAt", default=0)),
    )
