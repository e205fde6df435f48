import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from canvasforge.config import settings
from canvasforge.database import init_db
from canvasforge.errors import (
    GenerationUnavailable,
    IntegrityFault,
    NotFoundOrUnauthorized,
    ValidationError,
    VersionContention,
)

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": [{"field": exc.field, "message": exc.message}]},
        )

    @app.exception_handler(NotFoundOrUnauthorized)
    async def not_found(request: Request, exc: NotFoundOrUnauthorized):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(GenerationUnavailable)
    async def generation_unavailable(request: Request, exc: GenerationUnavailable):
        return JSONResponse(
            status_code=503,
            content={"detail": "Game generation is unavailable right now, try again later"},
        )

    @app.exception_handler(VersionContention)
    async def version_contention(request: Request, exc: VersionContention):
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc)},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(IntegrityFault)
    async def integrity_fault(request: Request, exc: IntegrityFault):
        log.error("Integrity fault on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.LOG_LEVEL)
    app = FastAPI(title="Canvas Forge", version="0.1.0", lifespan=lifespan)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    # Routers
    from canvasforge.api.games import router as games_router
    from canvasforge.api.checkpoints import router as checkpoints_router
    from canvasforge.api.publication import router as publication_router
    from canvasforge.api.generation import router as generation_router

    app.include_router(games_router)
    app.include_router(checkpoints_router)
    app.include_router(publication_router)
    app.include_router(generation_router)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "canvasforge"}

    return app


app = create_app()
