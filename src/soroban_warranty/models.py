"""Value types passed between pipeline stages.

None of these outlive a single invocation.
"""

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any

from stellar_sdk import xdr

from soroban_warranty.constants import WarrantyStatus


@dataclass(frozen=True, slots=True)
class InvocationRequest:
    method: str
    args: tuple[xdr.SCVal, ...]
    signer: str | None = None  # None for read-only queries


@dataclass(frozen=True, slots=True)
class SimulationSuccess:
    """Dry-run accepted by the ledger.

    ``retval`` is passed through exactly as the RPC produced it: an ``xdr.SCVal``,
    a base64 string, a JSON object (``xdrFormat=json``), or None.
    """

    min_resource_fee: int
    transaction_data: str | dict
    auth: tuple[str, ...] = ()
    retval: Any = None
    cost: dict = field(default_factory=dict)
    latest_ledger: int | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class SimulationFailure:
    error: Any
    latest_ledger: int | None = None

    @property
    def ok(self) -> bool:
        return False


SimulationOutcome = SimulationSuccess | SimulationFailure


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    status: str
    hash: str | None
    error_result_xdr: str | None = None
    latest_ledger: int | None = None

    @classmethod
    def from_result(cls, result: dict) -> "SubmissionOutcome":
        return cls(
            status=result.get("status", ""),
            hash=result.get("hash"),
            error_result_xdr=result.get("errorResultXdr") or result.get("errorResult"),
            latest_ledger=result.get("latestLedger"),
        )


class ResultKind(StrEnum):
    VALUE = auto()      # decoded return value
    NO_RETURN = auto()  # write-only call, value is the True sentinel
    DEGRADED = auto()   # committed, but the return value could not be decoded


@dataclass(frozen=True, slots=True)
class InvocationResult:
    value: Any
    kind: ResultKind = ResultKind.VALUE
    tx_hash: str | None = None
    status: str | None = None
    detail: str | None = None

    @property
    def degraded(self) -> bool:
        return self.kind is ResultKind.DEGRADED


@dataclass(slots=True)
class WarrantyData:
    id: int
    owner: str
    product_name: str
    serial_number: str
    manufacturer: str
    purchase_date: int  # unix seconds
    expiration_date: int
    status: WarrantyStatus
    created_at: int

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner": self.owner,
            "product_name": self.product_name,
            "serial_number": self.serial_number,
            "manufacturer": self.manufacturer,
            "purchase_date": str(self.purchase_date),
            "expiration_date": str(self.expiration_date),
            "status": self.status.value,
            "created_at": str(self.created_at),
        }
