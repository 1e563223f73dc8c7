"""Settings file read/update (the Apify token is the only key research uses)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from prospect_research.apify.backend import ActorPlatformBackend
from prospect_research.settings import APIFY_TOKEN_KEY, SettingsStore, mask_secret
from prospect_research.web.deps import get_apify_backend, get_settings_store
from prospect_research.web.responses import error_response

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("")
async def read_settings(store: SettingsStore = Depends(get_settings_store)):
    settings = store.load()
    if settings.get(APIFY_TOKEN_KEY):
        settings[APIFY_TOKEN_KEY] = mask_secret(str(settings[APIFY_TOKEN_KEY]))
    return {"success": True, "data": settings}


@router.put("")
async def update_settings(
    changes: dict[str, Any] = Body(...),
    store: SettingsStore = Depends(get_settings_store),
    apify: ActorPlatformBackend = Depends(get_apify_backend),
):
    if not isinstance(changes, dict) or not changes:
        return error_response(400, "Settings object required")
    settings = store.update(changes)
    if APIFY_TOKEN_KEY in changes:
        await apify.reset_configuration()
    if settings.get(APIFY_TOKEN_KEY):
        settings[APIFY_TOKEN_KEY] = mask_secret(str(settings[APIFY_TOKEN_KEY]))
    return {"success": True, "data": settings}
