import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel

from soroban_warranty.client import WarrantyTrackerClient
from soroban_warranty.config import ClientConfig, load_config
from soroban_warranty.errors import TransportError, ValidationError, WarrantyClientError
from soroban_warranty.logging_config import setup_logging

log = logging.getLogger("soroban_warranty.app")


class WarrantyResp(BaseModel):
    id: str
    owner: str
    product_name: str
    serial_number: str
    manufacturer: str
    purchase_date: str
    expiration_date: str
    status: str
    created_at: str


class OwnerWarrantiesResp(BaseModel):
    owner: str
    count: int
    warranties: list[WarrantyResp]


r_warranties = APIRouter(prefix="/warranties", tags=["warranties"])
r_owners = APIRouter(prefix="/owners", tags=["owners"])


def _client(request: Request) -> WarrantyTrackerClient:
    return request.app.state.client


def _http_error(e: WarrantyClientError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, TransportError):
        return HTTPException(status_code=502, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


@r_warranties.get("/count")
async def warranty_count(request: Request):
    try:
        return {"count": await _client(request).get_warranty_count()}
    except WarrantyClientError as e:
        raise _http_error(e) from e


@r_warranties.get("/{warranty_id}", response_model=WarrantyResp)
async def get_warranty(warranty_id: str, request: Request):
    try:
        w = await _client(request).get_warranty(warranty_id)
    except WarrantyClientError as e:
        raise _http_error(e) from e
    if w is None:
        raise HTTPException(status_code=404, detail=f"Warranty with ID {warranty_id} not found")
    return w.to_dict()


@r_warranties.get("/{warranty_id}/expired")
async def warranty_expired(warranty_id: str, request: Request):
    try:
        expired = await _client(request).is_warranty_expired(warranty_id)
    except WarrantyClientError as e:
        raise _http_error(e) from e
    if expired is None:
        raise HTTPException(status_code=404, detail=f"Warranty with ID {warranty_id} not found")
    return {"id": warranty_id, "expired": expired}


@r_owners.get("/{owner}/warranties", response_model=OwnerWarrantiesResp)
async def owner_warranties(owner: str, request: Request):
    try:
        ws = await _client(request).get_warranties_by_owner(owner)
    except WarrantyClientError as e:
        raise _http_error(e) from e
    return {"owner": owner, "count": len(ws), "warranties": [w.to_dict() for w in ws]}


def create_app(cfg: ClientConfig | None = None, *, http: httpx.AsyncClient | None = None) -> FastAPI:
    """Read-only HTTP view of the contract. Writes need an external signer and are not exposed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        conf = cfg or load_config()
        log.info("Serving contract %s via %s", conf.contract_id, conf.rpc_url)
        async with WarrantyTrackerClient.from_config(conf, http=http) as client:
            app.state.client = client
            yield

    app = FastAPI(title="soroban-warranty", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        try:
            rpc_health = await _client(request).pipeline.rpc.get_health()
        except TransportError as e:
            return {"status": "degraded", "rpc": e.message}
        return {"status": "ok", "rpc": rpc_health}

    app.include_router(r_warranties)
    app.include_router(r_owners)
    return app


def build_app() -> FastAPI:
    setup_logging()
    return create_app()
