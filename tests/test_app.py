import httpx
import pytest
from stellar_sdk import Keypair, scval

from soroban_warranty import codec
from soroban_warranty.app import create_app

from conftest import sim_success, warranty_scval

OWNER = Keypair.random().public_key


@pytest.fixture
async def api(cfg, http):
    app = create_app(cfg, http=http)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://api") as c:
            yield c


def one_warranty(args):
    if codec.decode_u64(args[0]) == 1:
        return sim_success(warranty_scval(1, OWNER).to_xdr())
    return sim_success(scval.to_void().to_xdr())


async def test_health(api):
    r = await api.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "rpc": {"status": "healthy"}}


async def test_health_degraded(api, ledger):
    ledger.fail_with = httpx.ConnectError("down")
    r = await api.get("/health")
    assert r.json()["status"] == "degraded"


async def test_get_warranty(api, ledger):
    ledger.simulate["get_warranty"] = one_warranty
    r = await api.get("/warranties/1")
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "1"
    assert body["owner"] == OWNER
    assert body["status"] == "Active"


async def test_get_unknown_warranty(api, ledger):
    ledger.simulate["get_warranty"] = one_warranty
    r = await api.get("/warranties/2")
    assert r.status_code == 404


async def test_bad_id_is_400(api):
    r = await api.get("/warranties/abc")
    assert r.status_code == 400


async def test_count(api, ledger):
    ledger.simulate["get_warranty_count"] = sim_success(scval.to_uint64(4).to_xdr())
    r = await api.get("/warranties/count")
    assert r.json() == {"count": 4}


async def test_expired(api, ledger):
    ledger.simulate["is_warranty_expired"] = sim_success(scval.to_bool(False).to_xdr())
    r = await api.get("/warranties/1/expired")
    assert r.json() == {"id": "1", "expired": False}


async def test_owner_warranties(api, ledger):
    ledger.simulate["get_warranties_by_owner"] = sim_success(scval.to_vec([scval.to_uint64(1)]).to_xdr())
    ledger.simulate["get_warranty"] = one_warranty
    r = await api.get(f"/owners/{OWNER}/warranties")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    assert body["warranties"][0]["serial_number"] == "SN-1"


async def test_rpc_down_is_502(api, ledger):
    ledger.fail_with = httpx.ConnectError("down")
    r = await api.get("/warranties/count")
    assert r.status_code == 502
