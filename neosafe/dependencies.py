"""FastAPI dependencies that assemble the services for a request."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from neosafe.database import get_db
from neosafe.services.accounts import AccountService
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.ownership import OwnershipService
from neosafe.services.telemetry import SensorReadingStore, TelemetryGateway


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


def get_registry(db: Session = Depends(get_db)) -> BoxRegistry:
    return BoxRegistry(db)


def get_ownership_service(registry: BoxRegistry = Depends(get_registry)) -> OwnershipService:
    return OwnershipService(registry)


def get_telemetry_store(request: Request) -> SensorReadingStore:
    """The store opened by the application lifespan."""
    return request.app.state.telemetry_store


def get_telemetry_gateway(store: SensorReadingStore = Depends(get_telemetry_store)) -> TelemetryGateway:
    return TelemetryGateway(store)
