# faturacao/infrastructure/external/insight_client.py
"""
Text-suggestion client (financial insights, invoice drafting hints).

POST {INSIGHT_API_URL} with {"prompt": ...}; the service answers
{"text": ...}. Suggestions are optional: any failure yields "".
"""

from __future__ import annotations

import logging

import httpx

from faturacao.config.settings import settings

logger = logging.getLogger("insight_client")


def is_configured() -> bool:
    return bool(settings.INSIGHT_API_URL)


async def generate_suggestion(prompt: str, timeout: float | None = None) -> str:
    """Return the suggested text, or "" when unavailable. Never raises."""
    if not is_configured():
        logger.debug("Insight API not configured, skipping suggestion")
        return ""

    headers = {"Content-Type": "application/json"}
    if settings.INSIGHT_API_KEY:
        headers["Authorization"] = f"Bearer {settings.INSIGHT_API_KEY}"

    async with httpx.AsyncClient(timeout=timeout or settings.INSIGHT_TIMEOUT_SECONDS) as client:
        try:
            r = await client.post(settings.INSIGHT_API_URL, headers=headers, json={"prompt": prompt})
            r.raise_for_status()
            data = r.json()
        except httpx.TimeoutException:
            logger.warning("Insight API timed out")
            return ""
        except httpx.HTTPStatusError as exc:
            logger.error("Insight API HTTP error: %d", exc.response.status_code)
            return ""
        except (httpx.HTTPError, ValueError):
            logger.exception("Insight API call failed")
            return ""

    text = data.get("text") if isinstance(data, dict) else None
    return text.strip() if isinstance(text, str) else ""
