"""Async HTTP client for the translation service."""

import logging

import httpx

from ..config import TRANSLATE_TIMEOUT, TRANSLATE_URL
from ..core.errors import TranslationError
from ..core.models import TranslationResult
from ..core.network import NetworkMonitor

logger = logging.getLogger(__name__)

OFFLINE_PREFIX = "[Offline]"


def offline_marker(text: str) -> str:
    """Text stored downstream when translation is skipped for being offline."""
    return f"{OFFLINE_PREFIX} {text}"


class TranslationClient:
    """
    Async HTTP client for the translation service with connection pooling.

    translate() never raises: when the network is known to be offline it
    returns the offline marker without calling the service, and any service
    failure falls back to the original text flagged as offline.
    """

    def __init__(
        self,
        url: str = TRANSLATE_URL,
        timeout: float = TRANSLATE_TIMEOUT,
        network: NetworkMonitor | None = None,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.network = network or NetworkMonitor()
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client with connection pooling."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def check_availability(self) -> bool:
        """Check if the translation service is reachable."""
        try:
            http = await self._get_http()
            response = await http.get(f"{self.url}/health")
            if response.status_code == 200:
                logger.info(f"Translation service connected: {self.url}")
                return True
        except httpx.HTTPError as e:
            logger.warning(f"Translation service not available: {e}")
        return False

    async def translate(
        self,
        text: str,
        target_lang: str,
        source_lang: str,
        force_offline: bool = False,
    ) -> TranslationResult:
        """
        Translate text.

        Args:
            text: Text to translate
            target_lang: ISO 639-1 target code (e.g. "es")
            source_lang: Source language hint (e.g. "en-US")
            force_offline: Skip the service as if the network were down

        Returns:
            TranslationResult; is_offline is True whenever the text is not a
            service translation
        """
        if not text.strip():
            return TranslationResult(text="", is_offline=False)

        if force_offline or not self.network.is_online:
            return TranslationResult(text=offline_marker(text), is_offline=True)

        try:
            translated = await self._request(text, target_lang, source_lang)
        except TranslationError as e:
            logger.warning(f"Translation failed, using original text: {e}")
            return TranslationResult(text=text, is_offline=True)

        return TranslationResult(text=translated or text, is_offline=False)

    async def _request(self, text: str, target_lang: str, source_lang: str) -> str:
        try:
            http = await self._get_http()
            response = await http.post(
                f"{self.url}/translate",
                json={"text": text, "target_lang": target_lang, "source_lang": source_lang},
            )
        except httpx.TimeoutException as e:
            raise TranslationError(f"timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TranslationError(str(e)) from e

        if response.status_code != 200:
            raise TranslationError(f"service returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise TranslationError(f"invalid response: {e}") from e

        if not isinstance(data, dict):
            raise TranslationError("invalid response: expected a JSON object")
        return str(data.get("text") or "").strip()

    async def close(self):
        """Close HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
