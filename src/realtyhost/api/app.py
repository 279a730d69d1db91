"""Callable HTTP surface.

Each domain operation is exposed as an RPC-style callable:

    POST /callable/addCustomDomain      {"data": {"domain": ..., "tenantId": ...}}
    POST /callable/checkDomainStatus    {"data": {"tenantId": ...}}
    POST /callable/removeCustomDomain   {"data": {"tenantId": ...}}

Successful calls answer ``{"result": ...}``; failures answer
``{"error": {"status": "<CODE>", "message": ...}}`` with the HTTP status of
the error kind.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from realtyhost import __version__
from realtyhost.core.auth import AuthContext, TokenVerifier
from realtyhost.core.config import RealtyHostConfig
from realtyhost.core.exceptions import InternalError, InvalidArgumentError, RealtyHostError
from realtyhost.domains.manager import DomainManager
from realtyhost.domains.storage import JsonTenantStore
from realtyhost.manifest import MANIFEST_CONTENT_TYPE, ManifestService
from realtyhost.observability.metrics import generate_metrics, get_content_type

logger = structlog.get_logger()


class CallableRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


def _error_response(error: RealtyHostError) -> JSONResponse:
    return JSONResponse(status_code=error.http_status, content={"error": error.to_dict()})


def _string_arg(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{key} must be a string.")
    return value


def create_app(
    manager: DomainManager,
    manifest_service: ManifestService,
    verifier: TokenVerifier,
) -> FastAPI:
    """Build the FastAPI application around already-constructed services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await manager.aclose()

    app = FastAPI(title="realtyhost", version=__version__, lifespan=lifespan)

    @app.exception_handler(RealtyHostError)
    async def realtyhost_error_handler(request: Request, exc: RealtyHostError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(InvalidArgumentError("Malformed request body."))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path)
        return _error_response(InternalError(str(exc) or type(exc).__name__))

    def caller(authorization: str | None = Header(default=None)) -> AuthContext | None:
        result = verifier.check(authorization)
        if not result.allowed:
            logger.debug("Caller not authenticated", reason=result.reason)
        return result.context

    @app.post("/callable/addCustomDomain")
    async def add_custom_domain(
        body: CallableRequest,
        auth: AuthContext | None = Depends(caller),
    ):
        record = await manager.provision(
            _string_arg(body.data, "tenantId"),
            _string_arg(body.data, "domain"),
            auth,
        )
        return {"result": {"success": True, "data": record.to_dict() if record else None}}

    @app.post("/callable/checkDomainStatus")
    async def check_domain_status(
        body: CallableRequest,
        auth: AuthContext | None = Depends(caller),
    ):
        report = await manager.check_status(_string_arg(body.data, "tenantId"), auth)
        return {"result": report.to_dict()}

    @app.post("/callable/removeCustomDomain")
    async def remove_custom_domain(
        body: CallableRequest,
        auth: AuthContext | None = Depends(caller),
    ):
        await manager.deprovision(_string_arg(body.data, "tenantId"), auth)
        return {"result": {"success": True}}

    @app.get("/manifest.json")
    async def manifest(request: Request):
        status_code, content = await manifest_service.manifest_for_host(
            request.headers.get("host")
        )
        return JSONResponse(
            status_code=status_code,
            content=content,
            media_type=MANIFEST_CONTENT_TYPE,
        )

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_metrics(), media_type=get_content_type())

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def create_app_from_config(config: RealtyHostConfig) -> FastAPI:
    platform = config.platform
    store = JsonTenantStore(platform.tenant_store_path)
    return create_app(
        manager=DomainManager.from_config(config, store=store),
        manifest_service=ManifestService(store, platform),
        verifier=TokenVerifier(platform.get_api_tokens()),
    )
