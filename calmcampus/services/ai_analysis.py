# ai analysis service — posts a student to the external analysis webhook
# the webhook answers with loosely formatted html/text, cleaned here before display

import logging
import re

import httpx

from calmcampus.config import settings

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """raised when the analysis webhook cannot be reached or answers with an error"""


_CLEANUP_STEPS = [
    (re.compile(r'"response":\s*"'), ""),
    (re.compile(r'"'), ""),
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"<strong>(.*?)</strong>", re.IGNORECASE), r"\1"),
    (re.compile(r"<[^>]*>"), ""),
    (re.compile(r"&nbsp;"), " "),
    (re.compile(r"\n{3,}"), "\n\n"),
]


def clean_analysis_text(raw: str) -> str:
    """strip the json wrapper and html-like markup from a webhook answer"""
    text = raw
    for pattern, replacement in _CLEANUP_STEPS:
        text = pattern.sub(replacement, text)
    return text.strip()


async def request_analysis(
    phone_number: str,
    student_name: str,
    student_id: str,
    client: httpx.AsyncClient | None = None,
) -> str:
    """call the analysis webhook and return the cleaned text. no retries."""
    payload = {
        "phone_number": phone_number,
        "student_name": student_name,
        "student_id": student_id,
    }

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.AI_ANALYSIS_TIMEOUT_SECONDS)

    try:
        response = await client.post(settings.AI_ANALYSIS_WEBHOOK_URL, json=payload)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"AI analysis webhook returned {e.response.status_code} for student {student_id}")
        raise AnalysisError(f"Analysis service error: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.error(f"AI analysis webhook unreachable for student {student_id}: {e}")
        raise AnalysisError("Analysis service unreachable") from e
    finally:
        if owns_client:
            await client.aclose()

    logger.info(f"AI analysis received for student {student_id}")
    return clean_analysis_text(response.text)
