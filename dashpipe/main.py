# dashpipe/main.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from dashpipe.api.v1.api import api_router
from dashpipe.core.config import IS_PRODUCTION, SECURITY_HEADERS, SWEEP_INTERVAL_SECONDS
from dashpipe.core.context import AppContext, create_context
from dashpipe.core.errors import PipelineError
from dashpipe.core.limiter import limiter
from dashpipe.core.security_headers import SecurityHeadersMiddleware
from dashpipe.core.sweeper import sweep_loop

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    # Startup: a context injected by the caller (tests) is used as-is
    if getattr(app.state, "ctx", None) is None:
        app.state.ctx = create_context()
    ctx: AppContext = app.state.ctx
    sweeper_task = asyncio.create_task(sweep_loop(ctx, SWEEP_INTERVAL_SECONDS))

    try:
        yield  # ----- Application running -----
    finally:
        # Shutdown
        sweeper_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper_task
        await ctx.aclose()


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.reason}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.reason}")
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


def create_app(ctx: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(
        title="DashPipe - Token-gated DASH streaming",
        description="Session and delivery token chain in front of a DASH origin.",
        version="1.0.0",
        lifespan=lifespan,
        exception_handlers={
            RateLimitExceeded: _rate_limit_exceeded_handler,
            PipelineError: pipeline_error_handler,
        },
        docs_url="/docs" if not IS_PRODUCTION else None,  # Disable docs in production
        redoc_url="/redoc" if not IS_PRODUCTION else None,  # Disable redoc in production
    )
    app.state.limiter = limiter
    app.state.ctx = ctx

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Remaining", "X-Delivery-Node", "X-Delivery-Expires"],
    )
    app.add_middleware(SecurityHeadersMiddleware, headers=SECURITY_HEADERS)

    app.include_router(api_router)
    return app


app = create_app()
