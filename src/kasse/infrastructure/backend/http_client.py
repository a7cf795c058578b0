from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from kasse.infrastructure.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class BackendError(Exception):
    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    status_code: int | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @classmethod
    def from_http_response(cls, response: httpx.Response) -> BackendError:
        try:
            payload = response.json()
        except ValueError:
            return cls(
                code="HTTP_ERROR",
                message=response.text or f"backend returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if isinstance(payload, dict):
            message = pick(payload, "error", "message", "Message", "title")
            return cls(
                code=str(pick(payload, "code", "Code") or "HTTP_ERROR"),
                message=str(message or response.text or f"backend returned HTTP {response.status_code}"),
                details=pick(payload, "details", "errors", "Errors"),
                status_code=response.status_code,
            )

        return cls(
            code="HTTP_ERROR",
            message=response.text or f"backend returned HTTP {response.status_code}",
            details=payload,
            status_code=response.status_code,
        )


def pick(payload: dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys``; the backend mixes camelCase and PascalCase."""
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def unwrap(payload: dict[str, Any]) -> dict[str, Any]:
    """Strip the ``Value``/``data`` wrappers some backend actions add around their body."""
    for key in ("Value", "value", "data"):
        inner = payload.get(key)
        if isinstance(inner, dict):
            return inner
    return payload


class BackendHttpClient:
    """Thin async client for the POS backend.

    Only GET requests are retried (timeouts, transport errors and 5xx, with a
    linear backoff). Writes are sent exactly once.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        headers = {"Accept": "application/json"}
        if settings.backend_token:
            headers["Authorization"] = f"Bearer {settings.backend_token}"
        self._client = client or httpx.AsyncClient(
            base_url=settings.backend_url,
            timeout=settings.timeout_seconds,
            headers=headers,
        )
        self._retry_max_attempts = max(1, settings.retry_max_attempts)
        self._retry_backoff_ms = max(0, settings.retry_backoff_ms)

    async def request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        normalized_path = path if path.startswith("/") else f"/{path}"
        allow_retry = method.upper() == "GET"

        for attempt in range(1, self._retry_max_attempts + 1):
            try:
                response = await self._client.request(
                    method=method,
                    url=normalized_path,
                    json=json_body,
                    params=params,
                )
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if (not allow_retry) or attempt >= self._retry_max_attempts:
                    raise BackendError(
                        code="NETWORK_ERROR",
                        message="network error while calling the POS backend",
                        details=str(exc),
                    ) from exc
                logger.warning(
                    "backend_request_retry",
                    extra={"method": method, "path": normalized_path, "attempt": attempt},
                )
                await self._backoff(attempt)
                continue

            if response.status_code >= 400:
                error = BackendError.from_http_response(response)
                if allow_retry and self._is_retryable_status(error.status_code) and attempt < self._retry_max_attempts:
                    logger.warning(
                        "backend_request_retry",
                        extra={
                            "method": method,
                            "path": normalized_path,
                            "status_code": error.status_code,
                            "attempt": attempt,
                        },
                    )
                    await self._backoff(attempt)
                    continue
                raise error

            try:
                payload = response.json()
            except ValueError:
                return {}
            return payload if isinstance(payload, dict) else {"data": payload}

        raise BackendError(code="NETWORK_ERROR", message="network error while calling the POS backend", details="retry exhausted")

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep((self._retry_backoff_ms * attempt) / 1000)

    @staticmethod
    def _is_retryable_status(status_code: int | None) -> bool:
        return bool(status_code and 500 <= status_code <= 599)
