"""
ViaCEP client: resolves a Brazilian postal code (CEP) into an address.
Used by the profile and patient forms to auto-fill street, district and city.
"""
import logging
import re
from typing import Optional

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class InvalidCepError(ValueError):
    pass


class CepLookupError(Exception):
    pass


def clean_cep(cep: str) -> str:
    digits = re.sub(r"\D", "", cep or "")
    if len(digits) != 8:
        raise InvalidCepError("CEP deve ter 8 dígitos")
    return digits


def to_address(payload: dict) -> dict:
    """Map ViaCEP field names onto the profile address fields."""
    return {
        "cep": payload.get("cep"),
        "street": payload.get("logradouro") or "",
        "neighborhood": payload.get("bairro") or "",
        "city": payload.get("localidade") or "",
        "state": payload.get("uf") or "",
    }


class ViaCepClient:
    """HTTP client for the public ViaCEP API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.VIACEP_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.VIACEP_TIMEOUT
        self.transport = transport

    def lookup(self, cep: str) -> dict:
        """
        Fetch the raw ViaCEP payload for ``cep``.
        Raises InvalidCepError for malformed input, CepLookupError when the API fails.
        An unknown CEP is not an error: ViaCEP answers ``{"erro": true}``.
        """
        digits = clean_cep(cep)
        logger.info("Fetching CEP %s from ViaCEP", digits)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(f"{self.base_url}/{digits}/json/")
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("ViaCEP lookup failed for %s: %s", digits, exc)
            raise CepLookupError("Erro ao buscar CEP") from exc

    def address(self, cep: str) -> Optional[dict]:
        """Profile-ready address for ``cep``, or None when ViaCEP does not know it."""
        payload = self.lookup(cep)
        if payload.get("erro"):
            return None
        return to_address(payload)


cep_client = ViaCepClient()
