import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

import soroban_warranty.constants as C

pkg_root = Path(__file__).parent
config_file = pkg_root / "config.toml"

TESTNET_HORIZON = "https://horizon-testnet.stellar.org"
FUTURENET_HORIZON = "https://horizon-futurenet.stellar.org"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    rpc_url: str
    horizon_url: str
    network_passphrase: str
    contract_id: str
    base_fee: int = C.DEFAULT_BASE_FEE
    tx_timeout: int | None = None  # None means no upper time bound
    rpc_timeout: float = C.RPC_TIMEOUT
    confirm_submission: bool = False
    confirm_timeout: float = C.CONFIRM_TIMEOUT
    confirm_interval: float = C.CONFIRM_INTERVAL
    fetch_concurrency: int = C.FETCH_CONCURRENCY
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def with_overrides(self, **kwargs) -> "ClientConfig":
        return replace(self, **kwargs)


def derive_horizon_url(rpc_url: str) -> str:
    """Map a Soroban RPC endpoint to the Horizon instance serving the same network."""
    if "horizon" in rpc_url:
        return rpc_url.split("/rpc")[0]
    if "soroban-futurenet" in rpc_url or "rpc-futurenet" in rpc_url:
        return FUTURENET_HORIZON
    return TESTNET_HORIZON


def load_config(path: Path | None = None, env: dict | None = None) -> ClientConfig:
    env = os.environ if env is None else env
    cfg = tomllib.loads(Path(path or config_file).read_text())

    net = cfg.get("network", {})
    txn = cfg.get("transaction", {})
    rpc = cfg.get("rpc", {})
    confirm = cfg.get("confirm", {})
    api = cfg.get("api", {})

    rpc_url = env.get("SOROBAN_RPC_URL") or net["rpc_url"]
    horizon_url = env.get("HORIZON_URL") or net.get("horizon_url") or derive_horizon_url(rpc_url)
    timeout = int(txn.get("timeout", 0))

    return ClientConfig(
        rpc_url=rpc_url,
        horizon_url=horizon_url,
        network_passphrase=env.get("NETWORK_PASSPHRASE") or net["passphrase"],
        contract_id=env.get("CONTRACT_ID") or cfg.get("contract", {}).get("id", ""),
        base_fee=int(txn.get("base_fee", C.DEFAULT_BASE_FEE)),
        tx_timeout=timeout or None,
        rpc_timeout=float(rpc.get("timeout", C.RPC_TIMEOUT)),
        confirm_submission=bool(confirm.get("enabled", False)),
        confirm_timeout=float(confirm.get("timeout", C.CONFIRM_TIMEOUT)),
        confirm_interval=float(confirm.get("interval", C.CONFIRM_INTERVAL)),
        fetch_concurrency=int(cfg.get("query", {}).get("concurrency", C.FETCH_CONCURRENCY)),
        api_host=api.get("host", "0.0.0.0"),
        api_port=int(api.get("port", 8000)),
    )
