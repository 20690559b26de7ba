"""
Postal code (CEP) lookup against a ViaCEP-compatible service.

The service answers GET {base_url}/{cep}/json/ with the address fields, or
with {"erro": true} when the code does not exist.
"""

import logging
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)


class CepLookupError(Exception):
    """The lookup service could not be reached or returned garbage."""


class CepNotFoundError(CepLookupError):
    """The lookup service reported that the postal code does not exist."""


class CepClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def lookup(self, cep: str) -> Dict[str, Any]:
        """Resolve an 8-digit CEP to its address payload."""
        url = f"{self.base_url}/{cep}/json/"
        try:
            response = await self._client.get(url)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CepLookupError(f"CEP lookup failed for {cep}: {e}") from e

        if not isinstance(data, dict):
            raise CepLookupError(f"Unexpected CEP payload for {cep}: {data!r}")
        # The service sends "erro": true (older deployments: "true")
        if data.get("erro"):
            raise CepNotFoundError(cep)
        return data

    async def aclose(self) -> None:
        await self._client.aclose()


# Global client instance (created lazily, closed on shutdown)
_client: Optional[CepClient] = None


def init_cep_client(base_url: str, timeout: float = 10.0) -> CepClient:
    global _client
    _client = CepClient(base_url, timeout=timeout)
    return _client


def get_cep_client() -> CepClient:
    """Get global CEP client, creating it from settings on first use."""
    global _client
    if _client is None:
        from .settings import settings
        _client = CepClient(settings.cep_service_url, timeout=settings.cep_timeout)
    return _client


async def close_cep_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
