"""Provider management routes (admin only)."""
from typing import List

from fastapi import APIRouter, Depends, status

from neosafe.auth import require_admin
from neosafe.dependencies import get_account_service
from neosafe.models.user import User
from neosafe.schemas.user import ProviderResponse, ProviderUpdate
from neosafe.services.accounts import AccountService

router = APIRouter(prefix="/providers", tags=["Providers"])


def provider_response(provider: User, box_count: int) -> ProviderResponse:
    response = ProviderResponse.model_validate(provider)
    response.box_count = box_count
    return response


@router.get("", response_model=List[ProviderResponse])
async def list_providers(
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(require_admin)
):
    """List provider accounts, newest first."""
    return [provider_response(p, count) for p, count in service.list_providers()]


@router.get("/{provider_id}", response_model=ProviderResponse)
async def get_provider(
    provider_id: int,
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(require_admin)
):
    """Get a provider account."""
    return provider_response(*service.get_provider(provider_id))


@router.put("/{provider_id}", response_model=ProviderResponse)
async def update_provider(
    provider_id: int,
    provider_update: ProviderUpdate,
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(require_admin)
):
    """Update a provider's name, email or active flag."""
    fields = provider_update.model_dump(exclude_unset=True)
    return provider_response(*service.update_provider(provider_id, fields))


@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_provider(
    provider_id: int,
    service: AccountService = Depends(get_account_service),
    current_user: User = Depends(require_admin)
):
    """Delete a provider that has not registered any box."""
    service.delete_provider(provider_id)
    return None
