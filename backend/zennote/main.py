import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from zennote.config import settings
from zennote.errors import InvalidIdentifier, InvalidMove, PersistenceError, ReferenceNotFound
from zennote.middleware.rate_limit import limiter
from zennote.routers import folders, notes
from zennote.services.gateway import PersistenceGateway, build_gateway
from zennote.services.store import NoteStore

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def create_app(gateway: PersistenceGateway | None = None, autosave_delay: float | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gw = gateway or await build_gateway(settings)
        store = NoteStore(gw, autosave_delay=autosave_delay)
        await store.load()
        app.state.store = store
        logger.info("Store ready", extra={"store_key": gw.store_key, "gateway": type(gw).__name__})

        yield

        # Pending edits are written before the gateway goes away
        try:
            await store.aclose()
        finally:
            await gw.close()

    app = FastAPI(title="ZenNote API", lifespan=lifespan)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(ReferenceNotFound)
    async def reference_not_found(request: Request, exc: ReferenceNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidIdentifier)
    async def invalid_identifier(request: Request, exc: InvalidIdentifier) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(InvalidMove)
    async def invalid_move(request: Request, exc: InvalidMove) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence failure", extra={"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable, change not saved"})

    @app.exception_handler(Exception)
    async def log_unhandled_exceptions(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", extra={"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(folders.router)
    app.include_router(notes.router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
