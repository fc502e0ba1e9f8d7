import logging

import pytest

from soroban_warranty.config import FUTURENET_HORIZON, TESTNET_HORIZON, derive_horizon_url, load_config
from soroban_warranty.logging_config import LOG_LEVEL, LOGGING_CONFIG, QUIET_LOGGERS, setup_logging


def test_packaged_defaults():
    cfg = load_config(env={})
    assert cfg.rpc_url == "https://soroban-testnet.stellar.org:443"
    assert cfg.horizon_url == TESTNET_HORIZON
    assert cfg.network_passphrase == "Test SDF Network ; September 2015"
    assert cfg.tx_timeout is None
    assert cfg.base_fee == 100
    assert cfg.confirm_submission is False


def test_env_overrides():
    cfg = load_config(env={
        "SOROBAN_RPC_URL": "https://rpc-futurenet.stellar.org",
        "CONTRACT_ID": "CABC",
        "NETWORK_PASSPHRASE": "Test SDF Future Network ; October 2022",
    })
    assert cfg.contract_id == "CABC"
    assert cfg.horizon_url == FUTURENET_HORIZON
    assert cfg.network_passphrase.startswith("Test SDF Future")


def test_file_values(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[network]\nrpc_url = "http://localhost:8000/rpc"\nhorizon_url = "http://localhost:8000"\n'
        'passphrase = "Standalone Network ; February 2017"\n'
        '[contract]\nid = "CXYZ"\n'
        "[transaction]\nbase_fee = 250\ntimeout = 300\n"
        "[confirm]\nenabled = true\ninterval = 0.5\n"
    )
    cfg = load_config(path, env={"HORIZON_URL": "http://h"})
    assert cfg.horizon_url == "http://h"
    assert cfg.contract_id == "CXYZ"
    assert cfg.base_fee == 250
    assert cfg.tx_timeout == 300
    assert cfg.confirm_submission is True
    assert cfg.confirm_interval == 0.5
    assert cfg.fetch_concurrency == 4


@pytest.mark.parametrize(
    "rpc_url, horizon",
    [
        ("https://soroban-testnet.stellar.org", TESTNET_HORIZON),
        ("https://rpc-futurenet.stellar.org:443", FUTURENET_HORIZON),
        ("https://soroban-futurenet.stellar.org", FUTURENET_HORIZON),
        ("http://my-horizon.local:8000/rpc", "http://my-horizon.local:8000"),
    ],
)
def test_derive_horizon_url(rpc_url, horizon):
    assert derive_horizon_url(rpc_url) == horizon


def test_with_overrides_copies():
    cfg = load_config(env={})
    other = cfg.with_overrides(base_fee=1000)
    assert other.base_fee == 1000
    assert cfg.base_fee == 100


def test_setup_logging_level_override(tmp_path, monkeypatch):
    monkeypatch.setitem(LOGGING_CONFIG["handlers"]["file"], "filename", str(tmp_path / "client.log"))
    setup_logging("debug")
    assert logging.getLogger("soroban_warranty").level == logging.DEBUG
    assert LOGGING_CONFIG["loggers"]["soroban_warranty"]["level"] == LOG_LEVEL
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    logging.getLogger("soroban_warranty.test").warning("written")
    assert "written" in (tmp_path / "client.log").read_text()
