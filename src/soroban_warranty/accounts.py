import logging

import httpx
from stellar_sdk import Account

import soroban_warranty.constants as C
from soroban_warranty.errors import InvalidAddressError, TransportError

log = logging.getLogger("soroban_warranty.accounts")


class AccountResolver:
    """Reads an account's current sequence number from Horizon.

    Never caches: every write invocation takes a fresh snapshot.
    """

    def __init__(self, horizon_url: str, *, timeout: float = C.RPC_TIMEOUT, http: httpx.AsyncClient | None = None):
        self.horizon_url = horizon_url.rstrip("/")
        self.timeout = timeout
        self._http = http
        self._owns_http = http is None

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def load_account(self, address: str) -> Account:
        url = f"{self.horizon_url}/accounts/{address}"
        try:
            r = await self.http.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to load account {address}: {e}", detail=e) from e

        if r.status_code == 404:
            raise InvalidAddressError(
                f"Account {address} does not exist on this network. Fund it before signing transactions.",
                detail=r.text,
            )
        try:
            r.raise_for_status()
            sequence = int(r.json()["sequence"])
        except httpx.HTTPStatusError as e:
            raise TransportError(f"Horizon answered {r.status_code} for {address}", detail=r.text) from e
        except (KeyError, ValueError) as e:
            raise TransportError(f"Horizon account record for {address} has no sequence", detail=r.text) from e

        log.info("Account %s loaded. Sequence: %s", address, sequence)
        return Account(address, sequence)
