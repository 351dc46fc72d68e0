"""
External provider interfaces for AuditReady.

The generative extraction and repair services are opaque collaborators.
They are modelled as injectable async capabilities so the engine's
invariants can be exercised against deterministic stubs:

- ``PatchProvider.patch(spec, errors)`` returns a fragment of patchable
  spec fields. It may fail by raising ``ProviderFailure``.
- ``Extractor.extract(document, spec)`` returns a ``FileResult``.

``HttpPatchProvider`` is the production adapter: it posts the failing spec
and its verification errors to a configured JSON endpoint.

Example usage:
    from core.providers import HttpPatchProvider

    provider = HttpPatchProvider("https://repair.internal/api/patch", api_key="...")
    fragment = await provider.patch(spec, ["Input schema is empty. ..."])
"""

import logging
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from core.errors import ProviderFailure
from core.models import FileResult, PipelineSpecDSL
from core.policy import get_engine_settings

logger = logging.getLogger(__name__)


class PatchProvider(Protocol):
    """Turns a failing spec and its errors into a patch fragment."""

    name: str

    async def patch(self, spec: PipelineSpecDSL, errors: Sequence[str]) -> Dict[str, Any]:
        ...


class Extractor(Protocol):
    """Turns one evidence document into a FileResult."""

    async def extract(self, document: Any, spec: PipelineSpecDSL) -> FileResult:
        ...


class HttpPatchProvider:
    """
    Repair provider backed by an HTTP JSON endpoint.

    The endpoint receives ``{"spec": {...}, "errors": [...]}`` and must answer
    with a JSON object holding the repaired spec fields. Transport errors,
    non-2xx statuses and non-object bodies raise ProviderFailure.
    """

    name = "http"

    def __init__(self, url: str, api_key: Optional[str] = None, timeout_s: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]] = None) -> Optional["HttpPatchProvider"]:
        """Build a provider from engine settings, or None when no endpoint is configured."""
        settings = settings or get_engine_settings()
        if not settings.get('repair_provider_url'):
            return None
        return cls(
            url=settings['repair_provider_url'],
            api_key=settings.get('repair_provider_api_key'),
            timeout_s=settings.get('repair_provider_timeout_s', 30.0),
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def patch(self, spec: PipelineSpecDSL, errors: Sequence[str]) -> Dict[str, Any]:
        payload = {"spec": spec.model_dump(mode="json"), "errors": list(errors)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise ProviderFailure(
                f"Repair provider request failed: {e}",
                provider=self.name,
                details={"url": self.url},
            ) from e

        logger.info(f"Repair provider response: {response.status_code}")

        if response.status_code >= 400:
            raise ProviderFailure(
                f"Repair provider returned HTTP {response.status_code}",
                provider=self.name,
                details={"url": self.url, "status": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderFailure(
                "Repair provider returned a non-JSON body",
                provider=self.name,
                details={"url": self.url},
            ) from e

        if not isinstance(body, dict):
            raise ProviderFailure(
                f"Repair provider returned {type(body).__name__}, expected an object",
                provider=self.name,
                details={"url": self.url},
            )
        return body
