"""Typed operations of the warranty-tracker contract on top of ContractPipeline."""

import asyncio
import logging
from datetime import date, datetime

import httpx

import soroban_warranty.constants as C
from soroban_warranty import codec
from soroban_warranty.config import ClientConfig, load_config
from soroban_warranty.constants import Method, WarrantyStatus
from soroban_warranty.errors import ExtractionAmbiguous
from soroban_warranty.models import InvocationResult, ResultKind, WarrantyData
from soroban_warranty.pipeline import ContractPipeline
from soroban_warranty.signer import ExternalSigner
from soroban_warranty.txn_builder import build_request, parse_warranty_id

log = logging.getLogger("soroban_warranty.client")

DateLike = int | str | date | datetime


class WarrantyTrackerClient:
    def __init__(self, pipeline: ContractPipeline, *, fetch_concurrency: int = C.FETCH_CONCURRENCY):
        self.pipeline = pipeline
        self.fetch_concurrency = max(1, fetch_concurrency)

    @classmethod
    def from_config(cls, cfg: ClientConfig | None = None, *, http: httpx.AsyncClient | None = None) -> "WarrantyTrackerClient":
        cfg = cfg or load_config()
        return cls(ContractPipeline.from_config(cfg, http=http), fetch_concurrency=cfg.fetch_concurrency)

    async def __aenter__(self) -> "WarrantyTrackerClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.pipeline.aclose()

    async def _invoke(self, method: Method, *args, signer_address: str, signer: ExternalSigner) -> InvocationResult:
        request = build_request(method, *args, signer=signer_address)
        return await self.pipeline.invoke(request.method, request.args, signer_address, signer)

    async def _query(self, method: Method, *args):
        request = build_request(method, *args)
        return await self.pipeline.query(request.method, request.args)

    # ---- writes ----

    async def register_warranty(
        self,
        owner: str,
        product_name: str,
        serial_number: str,
        manufacturer: str,
        purchase_date: DateLike,
        expiration_date: DateLike,
        *,
        signer_address: str,
        signer: ExternalSigner,
    ) -> InvocationResult:
        """Register a warranty owned by the signer. ``result.value`` is the new id
        unless the result is a sentinel (see ResultKind)."""
        result = await self._invoke(
            Method.REGISTER_WARRANTY,
            owner, product_name, serial_number, manufacturer, purchase_date, expiration_date,
            signer_address=signer_address,
            signer=signer,
        )
        if result.kind is ResultKind.VALUE:
            log.info("Registered warranty %s for %s", result.value, owner)
        return result

    async def transfer_ownership(self, warranty_id: int | str, new_owner: str, *, signer_address: str, signer: ExternalSigner) -> InvocationResult:
        return await self._invoke(Method.TRANSFER_OWNERSHIP, warranty_id, new_owner, signer_address=signer_address, signer=signer)

    async def update_status(self, warranty_id: int | str, status: WarrantyStatus | str, *, signer_address: str, signer: ExternalSigner) -> InvocationResult:
        return await self._invoke(Method.UPDATE_STATUS, warranty_id, status, signer_address=signer_address, signer=signer)

    async def revoke_warranty(self, warranty_id: int | str, *, signer_address: str, signer: ExternalSigner) -> InvocationResult:
        return await self._invoke(Method.REVOKE_WARRANTY, warranty_id, signer_address=signer_address, signer=signer)

    # ---- reads ----

    async def get_warranty(self, warranty_id: int | str) -> WarrantyData | None:
        wid = parse_warranty_id(warranty_id)
        native = await self._query(Method.GET_WARRANTY, wid)
        if native is None:
            return None
        if not isinstance(native, dict):
            log.error("Unexpected get_warranty result type: %s", type(native).__name__)
            return None
        try:
            return codec.decode_warranty(native, wid)
        except (KeyError, TypeError, ValueError) as e:
            raise ExtractionAmbiguous(f"Warranty {wid} has an unexpected shape: {e}", method=Method.GET_WARRANTY, detail=native) from e

    async def get_warranty_ids_by_owner(self, owner: str) -> list[int]:
        native = await self._query(Method.GET_WARRANTIES_BY_OWNER, owner)
        if not isinstance(native, list):
            return []
        return [int(i) for i in native]

    async def get_warranties_by_owner(self, owner: str) -> list[WarrantyData]:
        """Full records for every id the owner holds, fetched with bounded concurrency.

        Ids that no longer resolve are skipped; order follows the contract's id list.
        """
        ids = await self.get_warranty_ids_by_owner(owner)
        log.info("Found %d warranties for %s", len(ids), owner)
        if not ids:
            return []

        sem = asyncio.Semaphore(self.fetch_concurrency)

        async def fetch(wid: int) -> WarrantyData | None:
            async with sem:
                return await self.get_warranty(wid)

        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(fetch(wid), name=f"get_warranty:{wid}") for wid in ids]
        return [w for t in tasks if (w := t.result()) is not None]

    async def get_warranty_count(self) -> int:
        native = await self._query(Method.GET_WARRANTY_COUNT)
        return int(native or 0)

    async def is_warranty_expired(self, warranty_id: int | str) -> bool | None:
        """None when the warranty does not exist (the contract aborts for unknown ids)."""
        native = await self._query(Method.IS_WARRANTY_EXPIRED, warranty_id)
        return None if native is None else bool(native)
