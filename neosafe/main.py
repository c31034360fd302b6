"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from neosafe.config import settings
from neosafe.database import engine, Base
from neosafe.errors import SafeBoxError, safe_box_error_handler
from neosafe.routes import auth, boxes, claim, providers, sensors, transfers
from neosafe.services.telemetry import SensorReadingStore

# Register every model on the metadata before create_all
import neosafe.models  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and open the telemetry store for the process lifetime."""
    Base.metadata.create_all(bind=engine)
    store = SensorReadingStore.from_url(settings.telemetry_url)
    store.create_schema()
    app.state.telemetry_store = store
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    try:
        yield
    finally:
        store.close()
        logger.info("Telemetry store closed")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Safe box provisioning, ownership transfer and telemetry backend",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(SafeBoxError, safe_box_error_handler)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(claim.router, prefix="/api")
app.include_router(boxes.router, prefix="/api")
app.include_router(providers.router, prefix="/api")
app.include_router(transfers.router, prefix="/api")
app.include_router(sensors.router, prefix="/api")


@app.get("/")
async def root():
    """Service banner."""
    return {"message": settings.APP_NAME}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
