from fastapi import APIRouter, Body

from scholar.core.config import settings
from scholar.core.exceptions import ConfigurationError, ProviderError
from scholar.core.logging_config import get_logger
from scholar.services.ai_client import call_provider

logger = get_logger(__name__)

router = APIRouter(prefix="/ai", tags=["AI Proxy"])


@router.post("/generate")
async def generate(payload: dict = Body(...)):
    """Forward a provider request using the server-held key. Returns only the text."""
    if not settings.anthropic_api_key:
        raise ConfigurationError("AI key missing")

    try:
        text = await call_provider(settings.anthropic_api_key, payload)
    except Exception as e:
        logger.error(f"AI proxy request failed | error={type(e).__name__}: {e}")
        raise ProviderError("AI error")

    return {"text": text}
