"""Soroban JSON-RPC transport.

Ledger-side refusals come back as values (SimulationFailure, a SubmissionOutcome
with an error result). Only transport problems raise, as TransportError.
"""

import asyncio
import itertools
import logging
from typing import Any

import httpx
from stellar_sdk import TransactionEnvelope

import soroban_warranty.constants as C
from soroban_warranty import codec
from soroban_warranty.errors import TransportError
from soroban_warranty.models import (
    SimulationFailure,
    SimulationOutcome,
    SimulationSuccess,
    SubmissionOutcome,
)

log = logging.getLogger("soroban_warranty.rpc")


class SorobanRpc:
    """Client for the simulate/send endpoints of a Soroban RPC server."""

    def __init__(self, rpc_url: str, *, timeout: float = C.RPC_TIMEOUT, http: httpx.AsyncClient | None = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._http = http
        self._owns_http = http is None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SorobanRpc":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def _call(self, method: str, params: dict | None = None) -> dict:
        """POST one JSON-RPC request and return the whole response object."""
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }
        try:
            response = await self.http.post(self.rpc_url, json=request)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            log.error("RPC %s failed: %s", method, e)
            raise TransportError(f"{method} request to {self.rpc_url} failed: {e}", method=method, detail=e) from e
        except ValueError as e:
            raise TransportError(f"{method} returned a non-JSON body", method=method, detail=e) from e

        if not isinstance(body, dict) or ("result" not in body and "error" not in body):
            raise TransportError(f"{method} returned an unexpected body", method=method, detail=body)
        return body

    async def get_health(self) -> dict:
        body = await self._call("getHealth")
        return body.get("result") or body.get("error")

    async def simulate_transaction(self, envelope: TransactionEnvelope) -> SimulationOutcome:
        body = await self._call("simulateTransaction", {"transaction": codec.envelope_to_xdr(envelope)})
        if "error" in body:
            # JSON-RPC level refusal, e.g. a transaction the server could not decode
            log.warning("simulateTransaction refused: %s", body["error"])
            return SimulationFailure(error=body["error"])
        return parse_simulation(body["result"])

    async def send_transaction(self, envelope: TransactionEnvelope) -> SubmissionOutcome:
        body = await self._call("sendTransaction", {"transaction": codec.envelope_to_xdr(envelope)})
        if "error" in body:
            return SubmissionOutcome(status=C.SendStatus.ERROR, hash=None, error_result_xdr=str(body["error"]))
        return SubmissionOutcome.from_result(_result_object("sendTransaction", body))

    async def get_transaction(self, tx_hash: str) -> dict:
        body = await self._call("getTransaction", {"hash": tx_hash})
        if "error" in body:
            raise TransportError(f"getTransaction refused: {body['error']}", method="getTransaction", detail=body["error"])
        return _result_object("getTransaction", body)

    async def wait_for_status(self, tx_hash: str, *, timeout: float, interval: float) -> str:
        """Poll getTransaction until the status leaves NOT_FOUND or the timeout passes.

        Only the status field is read; the result envelope is never decoded.
        """
        try:
            async with asyncio.timeout(timeout):
                while True:
                    result = await self.get_transaction(tx_hash)
                    status = result.get("status", C.TxStatus.NOT_FOUND)
                    if status != C.TxStatus.NOT_FOUND:
                        log.debug("tx %s -> %s at ledger %s", tx_hash, status, result.get("ledger"))
                        return status
                    await asyncio.sleep(interval)
        except TimeoutError:
            log.warning("Confirmation timeout tx=%s after %.1fs", tx_hash, timeout)
            return C.SendStatus.PENDING


def _result_object(method: str, body: dict) -> dict:
    result = body.get("result")
    if not isinstance(result, dict):
        raise TransportError(f"{method} returned a non-object result: {result!r}", method=method, detail=body)
    return result


def _malformed(reason: str, latest: Any = None) -> SimulationFailure:
    log.warning("Malformed simulation result: %s", reason)
    return SimulationFailure(error={"message": f"malformed simulation result: {reason}"}, latest_ledger=latest)


def parse_simulation(result: Any) -> SimulationOutcome:
    """Tag a simulateTransaction result. Shape problems come back as a SimulationFailure too."""
    if not isinstance(result, dict):
        return _malformed(f"expected an object, got {result!r}")
    latest = result.get("latestLedger")
    if result.get("error"):
        return SimulationFailure(error=result["error"], latest_ledger=latest)
    if result.get("restorePreamble"):
        return SimulationFailure(
            error={"message": "contract state is archived and must be restored first",
                   "restorePreamble": result["restorePreamble"]},
            latest_ledger=latest,
        )

    results = result.get("results") or []
    if not isinstance(results, list):
        return _malformed(f"results is {type(results).__name__}, expected a list", latest)
    first = results[0] if results else {}
    if not isinstance(first, dict):
        return _malformed(f"results[0] is {first!r}, expected an object", latest)
    auth = first.get("auth") or []
    if not isinstance(auth, list):
        return _malformed(f"auth is {type(auth).__name__}, expected a list", latest)
    try:
        min_resource_fee = int(result.get("minResourceFee", 0))
    except (TypeError, ValueError):
        return _malformed(f"minResourceFee {result.get('minResourceFee')!r} is not an integer", latest)

    retval = first.get("xdr")
    if retval is None:
        retval = first.get("returnValueJson")

    return SimulationSuccess(
        min_resource_fee=min_resource_fee,
        transaction_data=result.get("transactionData") or result.get("transactionDataJson") or "",
        auth=tuple(auth),
        retval=retval,
        cost=result.get("cost") or {},
        latest_ledger=latest,
    )
