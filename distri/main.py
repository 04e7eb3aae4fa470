from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from distri.core import config
from distri.core.logging import configure_logging, get_logger
from distri.routers.admin import router as admin_router
from distri.routers.auth import router as auth_router
from distri.routers.drafts import router as drafts_router
from distri.routers.participations import router as participations_router
from distri.routers.tours import router as tours_router
from distri.services.scheduler import ValidationScheduler

configure_logging()
logger = get_logger(__name__)


def _run_alembic_upgrade() -> None:
    """Apply pending migrations at startup."""
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "alembic"))
    command.upgrade(cfg, "head")


app = FastAPI(
    title="Distri API",
    description="Réservation de tournées de distribution de flyers par secteur IRIS",
    version="0.1.0",
)

scheduler = ValidationScheduler()


@app.on_event("startup")
def _startup() -> None:
    try:
        _run_alembic_upgrade()
    except Exception:
        # The API still serves the static dataset without a database
        logger.exception("alembic_upgrade_failed")
    if config.ENABLE_SCHEDULER:
        scheduler.start()


@app.on_event("shutdown")
def _shutdown() -> None:
    scheduler.stop()


@app.exception_handler(SQLAlchemyError)
async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Base de données indisponible, réessayez plus tard"})


@app.exception_handler(RedisError)
async def _cache_error(request: Request, exc: RedisError) -> JSONResponse:
    logger.error("redis_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "Service temporairement indisponible"})


app.include_router(tours_router)
app.include_router(drafts_router)
app.include_router(participations_router)
app.include_router(auth_router)
app.include_router(admin_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: restrict to the front-end origin once it is deployed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    return {"status": "ok"}


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "message": "Distri API",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("distri.main:app", host="0.0.0.0", port=8000, reload=True)
