"""AI Provider Proxy — FastAPI application entry point.

Forwards requests to third-party AI provider APIs through one endpoint,
enforcing per-project usage limits and a destination host allowlist.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ai_proxy.logging.audit import (
    RequestTimer,
    generate_request_id,
    get_audit_logger,
    report_exception,
    request_id_var,
    setup_logging,
)
from ai_proxy.proxy.engine import ForwardRequest
from ai_proxy.proxy.errors import GENERIC_ERROR_MESSAGE, ProxyError
from ai_proxy.proxy.handler import close_engine, get_engine
from ai_proxy.security.principal import Principal, get_principal

VERSION = "0.1.0"

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Proxy started")
    yield
    await close_engine()
    get_audit_logger().info("Proxy stopped")


app = FastAPI(
    title="AI Provider Proxy",
    description="Forwarding gateway for AI provider APIs",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.api_route("/{provider}/{path:path}", methods=PROXY_METHODS)
async def proxy(
    provider: str,
    path: str,
    request: Request,
    principal: Principal = Depends(get_principal),
):
    """Forward any request under /{provider}/ to the provider's API.

    Pipeline: Resolve provider -> Host allowlist -> Usage limit -> Forward -> Account
    """
    logger = get_audit_logger()
    rid = generate_request_id()
    request_id_var.set(rid)

    body = await request.body()
    forward_request = ForwardRequest(
        method=request.method,
        path=raw_path_suffix(request, path),
        headers=request.headers.items(),
        body=body or None,
        query=request.scope.get("query_string", b"").decode("latin-1"),
    )

    try:
        engine = get_engine()
        with RequestTimer() as timer:
            result = await engine.forward(principal, provider, forward_request)
    except ProxyError as e:
        return JSONResponse(status_code=e.status_code, content=e.body, headers={"X-Request-Id": rid})
    except Exception as e:
        report_exception(e, provider=provider, project_id=principal.project_id)
        return JSONResponse(
            status_code=500,
            content={"message": GENERIC_ERROR_MESSAGE},
            headers={"X-Request-Id": rid},
        )

    logger.info(
        "Request proxied",
        extra={"audit_data": {
            "project_id": principal.project_id,
            "principal_type": principal.type.value,
            "provider": provider,
            "method": request.method,
            "upstream_status": result.status_code,
            "latency_ms": timer.elapsed_ms,
        }},
    )

    return Response(
        content=result.body,
        status_code=result.status_code,
        headers={"content-type": result.content_type, "X-Request-Id": rid},
    )


def raw_path_suffix(request: Request, path: str) -> str:
    """Return the path after ``/{provider}/`` exactly as the client encoded it.

    Starlette decodes ``{path:path}``, which would turn ``%2F`` into a
    separator and ``%3F`` into a query. Falls back to the decoded path when
    the server does not supply ``raw_path``.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return path
    raw_path = raw.decode("latin-1").split("?", 1)[0]
    segments = raw_path.split("/", 2)
    return segments[2] if len(segments) == 3 else ""
