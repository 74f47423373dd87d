"""Describable API errors understood by the error classifier.

The cloud API reports failures in two shapes: an RFC 7807 problem document
(``{"type": ..., "title": ..., "status": ...}``) and the older error envelope
(``{"error": {"error_code": "STORAGE_NOT_FOUND", "error_message": ...}}``).
Fetch closures built on aiohttp can use ``raise_for_problem`` to turn a
failed response into one of them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import aiohttp
from loguru import logger

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(eq=False)
class Problem(Exception):
    status: int
    title: str = ""
    type: str = ""
    correlation_id: str = ""

    def __str__(self) -> str:
        if self.title:
            return f"HTTP {self.status}: {self.title}"
        return f"HTTP {self.status}"

    @property
    def error_code(self) -> str:
        """Fragment or last path segment of the problem type, upper-cased.

        ``.../errors#SERVER_NOT_FOUND`` -> ``SERVER_NOT_FOUND``,
        ``.../errors/not-found`` -> ``NOT_FOUND``.
        """
        base, _, fragment = self.type.partition("#")
        code = fragment or base.rstrip("/").rsplit("/", 1)[-1]
        return code.replace("-", "_").upper()


@dataclass(eq=False)
class ServiceError(Exception):
    error_code: str
    error_message: str = ""
    status: int = 0

    def __str__(self) -> str:
        return f"{self.error_message} ({self.error_code})"


# ─── Parsing ─────────────────────────────────────────────────────────


def parse_problem(status: int, body: str) -> Problem | ServiceError:
    """Build the error described by a failed response body.

    Bodies that are not JSON (or not one of the known shapes) become a
    ``Problem`` whose title is the raw body.
    """
    try:
        data: Any = json.loads(body) if body else None
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict):
        envelope = data.get("error")
        if isinstance(envelope, dict) and "error_code" in envelope:
            return ServiceError(
                error_code=str(envelope["error_code"]),
                error_message=str(envelope.get("error_message", "")),
                status=status,
            )
        if "type" in data or "title" in data:
            raw_status = data.get("status", status)
            return Problem(
                status=raw_status if isinstance(raw_status, int) else status,
                title=str(data.get("title", "")),
                type=str(data.get("type", "")),
                correlation_id=str(data.get("correlation_id", "")),
            )

    return Problem(status=status, title=body.strip())


async def raise_for_problem(resp: aiohttp.ClientResponse) -> None:
    """Raise the described error if ``resp`` is a 4xx/5xx response."""
    if resp.status < 400:
        return
    body = await resp.text()
    logger.bind(component="http").warning(
        "HTTP {status} from {url}: {body}",
        status=resp.status, url=str(resp.url), body=body[:500],
    )
    raise parse_problem(resp.status, body)
