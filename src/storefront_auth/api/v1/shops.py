"""Installed shop listing endpoints."""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from storefront_auth.core.dependencies import get_credential_store
from storefront_auth.core.models import ShopSummary
from storefront_auth.core.store import CredentialStore

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/shops", response_model=list[ShopSummary])
async def list_shops(
    store: CredentialStore = Depends(get_credential_store),
) -> list[ShopSummary]:
    """List installed shops. Access tokens are never part of the response."""
    return await run_in_threadpool(store.list)
