"""Generation backend health check: ping before opening a session."""

import asyncio
import logging

from focus_group.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Responde solo con la palabra OK."
_TIMEOUT_SEC = 15.0


async def check_provider(provider: AIProvider) -> tuple[bool, str]:
    """Returns (ok, error_message); error_message is "" when ok."""
    try:
        await asyncio.wait_for(provider.generate(_PING_PROMPT, round_number=0), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return False, f"No reply within {_TIMEOUT_SEC:g}s"
    except Exception as exc:
        return False, str(exc)
    logger.debug("Provider %s passed health check", provider.name())
    return True, ""
