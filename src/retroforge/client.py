"""Async HTTP client for the Retro Diffusion inference API.

Wraps a single persistent ``httpx.AsyncClient`` carrying the
``X-RD-Token`` auth header and a 90 second timeout.  Every failure is
normalized into the :mod:`retroforge.errors` taxonomy; nothing is
retried here, retry policy belongs to the caller.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from retroforge.errors import (
    ApiError,
    AuthError,
    NetworkError,
    RequestTimeoutError,
    ResponseFormatError,
    ServiceError,
)
from retroforge.logging import get_logger, mask_api_key
from retroforge.models import CreditInfo, GenerationResult, GenerationSettings
from retroforge.payload import build_payload, describe_payload, payload_to_json

logger = get_logger("client")

BASE_URL = "https://api.retrodiffusion.ai/v1"
AUTH_HEADER = "X-RD-Token"
DEFAULT_TIMEOUT = 90.0
MIN_API_KEY_LENGTH = 10
_BODY_LOG_LIMIT = 2000


def validate_api_key(api_key: str | None) -> None:
    """Reject obviously invalid keys without a network round trip.

    Raises:
        AuthError: If the key is empty or shorter than the minimum length.
    """
    if not api_key or len(api_key) < MIN_API_KEY_LENGTH:
        raise AuthError(
            "API key is missing or appears invalid. "
            "Please check your API key in the settings."
        )


def _snippet(body: str) -> str:
    if len(body) <= _BODY_LOG_LIMIT:
        return body
    return body[:_BODY_LOG_LIMIT] + f"... ({len(body)} chars)"


class RetroDiffusionClient:
    """Client for ``/inferences`` (generate) and ``/inferences/credits``.

    Example::

        async with RetroDiffusionClient(api_key) as client:
            credits = await client.check_credits()
            result = await client.generate(settings)
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Retro Diffusion API key (sent as ``X-RD-Token``).
            base_url: API root, without trailing slash.
            timeout: Per-request timeout in seconds.
            transport: Optional custom transport (used by tests).
        """
        self._api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={AUTH_HEADER: self._api_key},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RetroDiffusionClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def validate_key(self) -> None:
        """Raise :class:`AuthError` if the configured key is obviously invalid."""
        validate_api_key(self._api_key)

    # -- operations ---------------------------------------------------------

    async def generate(self, settings: GenerationSettings) -> GenerationResult:
        """Submit a generation request.

        Args:
            settings: The generation settings to send.

        Returns:
            The parsed :class:`GenerationResult`.

        Raises:
            AuthError: Invalid key (checked locally) or HTTP 401.
            ServiceError: HTTP 5xx.
            RequestTimeoutError: No response within the timeout.
            NetworkError: Transport failure.
            ApiError: Any other non-2xx status.
            ResponseFormatError: 2xx body that does not parse.
        """
        self.validate_key()

        payload = build_payload(settings)
        logger.info(
            "Generating %d image(s) with %s/%s at %dx%d (key %s)",
            settings.num_images,
            settings.model,
            settings.prompt_style,
            settings.width,
            settings.height,
            mask_api_key(self._api_key),
        )
        logger.debug("Request payload: %s", describe_payload(payload))

        response = await self._send(
            "generate",
            "POST",
            "/inferences",
            content=payload_to_json(payload),
            headers={"Content-Type": "application/json"},
        )
        result = self._parse("generate", response, GenerationResult)
        logger.info(
            "Received %d image(s), cost %d credit(s), %d remaining",
            len(result.base64_images),
            result.credit_cost,
            result.remaining_credits,
        )
        return result

    async def check_credits(self) -> CreditInfo:
        """Fetch the remaining credit balance.

        Raises:
            AuthError: Invalid key (checked locally) or HTTP 401.
            ServiceError: HTTP 5xx.
            RequestTimeoutError: No response within the timeout.
            NetworkError: Transport failure.
            ApiError: Any other non-2xx status.
            ResponseFormatError: 2xx body that does not parse.
        """
        self.validate_key()
        response = await self._send("check_credits", "GET", "/inferences/credits")
        info = self._parse("check_credits", response, CreditInfo)
        logger.info("Credits available: %d", info.credits)
        return info

    # -- internals ----------------------------------------------------------

    async def _send(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        """Issue one request and classify transport and status failures."""
        client = self._get_client()
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("%s timed out after %.0fs", operation, self.timeout)
            raise RequestTimeoutError(
                f"The request timed out after {self.timeout:.0f} seconds. "
                "Please try again later.",
                timeout=self.timeout,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("%s network error: %s", operation, exc)
            raise NetworkError(
                f"Network error: {exc}. Please check your internet connection."
            ) from exc

        status = response.status_code
        body = response.text
        logger.debug("%s response status %d", operation, status)

        if response.is_success:
            return response

        logger.error(
            "%s failed with status %d: %s", operation, status, _snippet(body)
        )
        if status == 401:
            raise AuthError(
                "Unauthorized: Your API key appears to be invalid. "
                "Please check your API key in the settings.",
                status_code=status,
            )
        if 500 <= status < 600:
            raise ServiceError(
                "Internal Server Error: The Retro Diffusion API is experiencing "
                "issues. Please try again later or contact their support.",
                status_code=status,
                body=body,
            )
        raise ApiError(status, body)

    @staticmethod
    def _parse(
        operation: str, response: httpx.Response, model: type[BaseModel]
    ) -> Any:
        """Validate a 2xx JSON body against *model*."""
        body = response.text
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.error("%s returned invalid JSON: %s", operation, _snippet(body))
            raise ResponseFormatError(
                f"Failed to parse API response: {exc}", body=body
            ) from exc
        if not isinstance(data, dict):
            logger.error("%s returned non-object JSON: %s", operation, _snippet(body))
            raise ResponseFormatError(
                f"Failed to parse API response: expected a JSON object, "
                f"got {type(data).__name__}",
                body=body,
            )
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.error("%s response failed validation: %s", operation, exc)
            raise ResponseFormatError(
                f"Failed to parse API response: {exc}", body=body
            ) from exc
