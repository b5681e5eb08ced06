"""Provider credential check routes.

POST /v1/providers/{provider}/test reports whether the provider's API key
is present and superficially well formed. No request is sent to the
vendor.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from llm_talk.api.dependencies import get_app_settings
from llm_talk.core.config import Settings
from llm_talk.providers.registry import check_credentials


router = APIRouter(prefix="/v1/providers", tags=["providers"])


@router.post("/{provider}/test")
async def test_provider(
    provider: str,
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Credential heuristics for one provider.

    Raises:
        HTTPException: 404 for an unknown provider, 400 when the key is
            missing or malformed.
    """
    try:
        result = check_credentials(provider, settings)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown provider '{provider}'") from None

    if not result.valid:
        raise HTTPException(status_code=400, detail=result.message)

    return {
        "success": True,
        "provider": result.provider,
        "message": result.message,
    }


__all__ = ["router"]
