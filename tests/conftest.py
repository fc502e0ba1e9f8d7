"""Shared fixtures: an in-process fake of Soroban RPC + Horizon behind httpx.MockTransport."""

import base64
import json
from collections import Counter
from typing import Any

import httpx
import pytest
from stellar_sdk import Address, Keypair, Network, SorobanDataBuilder, StrKey, TransactionEnvelope, scval, xdr

from soroban_warranty.client import WarrantyTrackerClient
from soroban_warranty.config import ClientConfig
from soroban_warranty.pipeline import ContractPipeline
from soroban_warranty.signer import KeypairSigner

PASSPHRASE = Network.TESTNET_NETWORK_PASSPHRASE
RPC_URL = "https://rpc.test/soroban"
HORIZON_URL = "https://horizon.test"
CONTRACT_ID = StrKey.encode_contract(bytes(range(32)))


def transaction_data_b64(resource_fee: int = 5_000) -> str:
    return SorobanDataBuilder().set_resource_fee(resource_fee).build().to_xdr()


def auth_entry_b64(function: str = "register_warranty") -> str:
    entry = xdr.SorobanAuthorizationEntry(
        credentials=xdr.SorobanCredentials(xdr.SorobanCredentialsType.SOROBAN_CREDENTIALS_SOURCE_ACCOUNT),
        root_invocation=xdr.SorobanAuthorizedInvocation(
            function=xdr.SorobanAuthorizedFunction(
                xdr.SorobanAuthorizedFunctionType.SOROBAN_AUTHORIZED_FUNCTION_TYPE_CONTRACT_FN,
                contract_fn=xdr.InvokeContractArgs(
                    contract_address=Address(CONTRACT_ID).to_xdr_sc_address(),
                    function_name=xdr.SCSymbol(function.encode()),
                    args=[],
                ),
            ),
            sub_invocations=[],
        ),
    )
    return entry.to_xdr()


def sc_struct(fields: dict[str, xdr.SCVal]) -> xdr.SCVal:
    entries = [xdr.SCMapEntry(key=scval.to_symbol(k), val=v) for k, v in sorted(fields.items())]
    return xdr.SCVal(xdr.SCValType.SCV_MAP, map=xdr.SCMap(entries))


def warranty_scval(warranty_id: int, owner: str, status: str = "Active") -> xdr.SCVal:
    return sc_struct({
        "id": scval.to_uint64(warranty_id),
        "owner": scval.to_address(Address(owner)),
        "product_name": scval.to_string("Laptop"),
        "serial_number": scval.to_string(f"SN-{warranty_id}"),
        "manufacturer": scval.to_string("Acme"),
        "purchase_date": scval.to_uint64(1_704_067_200),
        "expiration_date": scval.to_uint64(1_767_225_600),
        "status": scval.to_vec([scval.to_symbol(status)]),
        "created_at": scval.to_uint64(1_704_100_000),
    })


def scpvalue_envelope_b64() -> str:
    """An envelope announcing ENVELOPE_TYPE_SCPVALUE, which no transaction union arm covers."""
    return base64.b64encode((4).to_bytes(4, "big") + bytes(64)).decode()


def unknown_key_type_envelope_b64() -> str:
    """A v1 envelope whose source account uses a key type the XDR layer does not know."""
    return base64.b64encode((2).to_bytes(4, "big") + (99).to_bytes(4, "big") + bytes(64)).decode()


def invoked(tx_xdr: str) -> tuple[str, list[xdr.SCVal]]:
    """Function name and arguments of the single contract call in an envelope."""
    te = TransactionEnvelope.from_xdr(tx_xdr, PASSPHRASE)
    call = te.transaction.operations[0].host_function.invoke_contract
    return call.function_name.sc_symbol.decode(), list(call.args)


class FakeLedger:
    """Answers Horizon account lookups and Soroban JSON-RPC calls.

    ``simulate`` maps a contract function name to either a result dict or a
    callable taking the call's SCVal args and returning one.
    """

    def __init__(self, sequence: int = 123):
        self.sequence = sequence
        self.simulate: dict[str, Any] = {}
        self.send_result: dict = {"status": "PENDING", "hash": "ab" * 32, "latestLedger": 100}
        self.tx_status: list[str] = []
        self.calls: Counter = Counter()
        self.sent: list[str] = []
        self.simulated: list[str] = []
        self.fail_with: Exception | None = None
        self.missing_accounts: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            raise self.fail_with
        if request.method == "GET" and request.url.path.startswith("/accounts/"):
            self.calls["loadAccount"] += 1
            if request.url.path.rsplit("/", 1)[-1] in self.missing_accounts:
                return httpx.Response(404, json={"status": 404, "title": "Resource Missing"})
            return httpx.Response(200, json={"id": request.url.path.rsplit("/", 1)[-1], "sequence": str(self.sequence)})

        body = json.loads(request.content)
        method = body["method"]
        self.calls[method] += 1
        params = body.get("params") or {}
        if method == "simulateTransaction":
            self.simulated.append(params["transaction"])
            fn, args = invoked(params["transaction"])
            answer = self.simulate[fn]
            result = answer(args) if callable(answer) else answer
        elif method == "sendTransaction":
            self.sent.append(params["transaction"])
            result = self.send_result
        elif method == "getTransaction":
            result = {"status": self.tx_status.pop(0) if self.tx_status else "NOT_FOUND"}
        elif method == "getHealth":
            result = {"status": "healthy"}
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def sim_success(retval: Any = None, auth: list[str] | None = None, resource_fee: int = 5_000) -> dict:
    first: dict = {"auth": auth or []}
    if isinstance(retval, dict):
        first["returnValueJson"] = retval
    elif retval is not None:
        first["xdr"] = retval
    return {
        "transactionData": transaction_data_b64(resource_fee),
        "minResourceFee": str(resource_fee),
        "results": [first],
        "cost": {"cpuInsns": "1000", "memBytes": "2000"},
        "latestLedger": 99,
    }


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def signer(keypair) -> KeypairSigner:
    return KeypairSigner(keypair)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def cfg() -> ClientConfig:
    return ClientConfig(
        rpc_url=RPC_URL,
        horizon_url=HORIZON_URL,
        network_passphrase=PASSPHRASE,
        contract_id=CONTRACT_ID,
        confirm_interval=0.0,
    )


@pytest.fixture
async def http(ledger):
    async with httpx.AsyncClient(transport=httpx.MockTransport(ledger.handler)) as client:
        yield client


@pytest.fixture
def pipeline(cfg, http) -> ContractPipeline:
    return ContractPipeline.from_config(cfg, http=http)


@pytest.fixture
def client(pipeline) -> WarrantyTrackerClient:
    return WarrantyTrackerClient(pipeline, fetch_concurrency=2)


class ScriptedSigner:
    """Signer stand-in returning a fixed SignResult."""

    def __init__(self, result):
        self.result = result
        self.seen: list[str] = []

    async def sign_transaction(self, tx_xdr: str, *, network_passphrase: str):
        self.seen.append(tx_xdr)
        return self.result
