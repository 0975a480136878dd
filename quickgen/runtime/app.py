from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from quickgen.runtime.generation.transport import HttpxTransport
from quickgen.runtime.log import setup_logging
from quickgen.runtime.managers.sessions import SessionController
from quickgen.runtime.registry import StreamRegistry
from quickgen.runtime.settings import get_settings
from quickgen.runtime.store.local import FileWorkspaceStore


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings)

    logger.info("quickgen starting (host={}, port={})", settings.host, settings.port)
    prefix_info = f", prefix={settings.data_prefix}" if settings.data_prefix else ""
    logger.info("Data root: {}{}", settings.data_root, prefix_info)
    logger.info("Generation endpoint: {} (model={})", settings.api_endpoint, settings.model)
    if settings.api_key is None:
        logger.warning("QUICKGEN_API_KEY not set -- generation requests will fail")

    # Settings are re-read per request so a refreshed cache takes effect.
    registry = StreamRegistry()
    transport = HttpxTransport(timeout=settings.request_timeout)
    store = FileWorkspaceStore(settings.data_root, prefix=settings.data_prefix)
    _app.state.store = store
    _app.state.registry = registry
    _app.state.controller = SessionController(
        store,
        registry,
        transport,
        lambda: get_settings().generation_settings(),
        timeout=settings.request_timeout,
        system_prompt=settings.system_prompt,
    )
    logger.info("SessionController: initialised")

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("quickgen shutting down (active_generations={})", registry.active_count)

    # 1. Stop accepting new generations.
    registry.begin_shutdown()

    # 2. Wait for active generations to complete naturally.
    if registry.active_count > 0:
        timeout = settings.graceful_shutdown_timeout
        logger.info("Waiting for {} active generations to finish (timeout={}s)...", registry.active_count, timeout)
        drained = await registry.wait_until_drained(timeout=timeout)
        if not drained:
            # Last resort: cancel what is left.
            cancelled = registry.cancel_all()
            logger.warning("Cancelled {} generations after timeout", cancelled)
            await registry.wait_until_drained(timeout=5.0)

    # 3. Signal SSE streams to close.  Must happen AFTER the drain so that
    #    SSE connections can deliver the terminal event before closing.
    AppStatus.should_exit = True
    logger.info("SSE: signalled streams to close")

    await transport.aclose()
    logger.info("HTTP transport: closed")


app = FastAPI(title="quickgen", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Routers -----------------------------------------------------------------
from quickgen.runtime.routers.chat import router as chat_router  # noqa: E402
from quickgen.runtime.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(chat_router)

app.include_router(api)
