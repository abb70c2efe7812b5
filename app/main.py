import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: in development create missing tables; production uses Alembic
    if settings.DEBUG:
        import app.models  # noqa: F401
        from app.database import Base, engine

        Base.metadata.create_all(bind=engine)
        logger.info("DEBUG mode: tables created if missing.")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from app.routers import auth  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])

# Hierarchical classification: validation, suggestions, reconciliation
from app.routers import clasificacion  # noqa: E402

app.include_router(
    clasificacion.router,
    prefix="/api/clasificacion",
    tags=["Clasificación"],
)

# Classification rules and retroactive propagation
from app.routers import reglas  # noqa: E402

app.include_router(
    reglas.router,
    prefix="/api/reglas",
    tags=["Reglas de Clasificación"],
)

# Hierarchy diagnostic
from app.routers import diagnostico  # noqa: E402

app.include_router(
    diagnostico.router,
    prefix="/api/diagnostico",
    tags=["Diagnóstico"],
)

# Exportación (Excel)
from app.routers import exportacion  # noqa: E402

app.include_router(
    exportacion.router,
    prefix="/api/exportar",
    tags=["Exportación"],
)
