import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import httpx

from studio.config import get_settings
from studio.errors import GenerationError

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """An image produced by the generation service."""
    image_url: str
    strategy: str = ""
    stored_url: str | None = None

    @property
    def final_url(self) -> str:
        """Owned storage wins over the service URL once it exists."""
        return self.stored_url or self.image_url


def _dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    for key in path:
        if isinstance(key, int):
            if not isinstance(data, list) or len(data) <= key:
                return None
        elif not isinstance(data, dict) or key not in data:
            return None
        data = data[key]
    return data


def _url(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def message_image_url(data: dict) -> str | None:
    return _url(_dig(data, "choices", 0, "message", "images", 0, "image_url", "url"))


def message_image(data: dict) -> str | None:
    return _url(_dig(data, "choices", 0, "message", "images", 0, "url"))


def data_array(data: dict) -> str | None:
    return _url(_dig(data, "data", 0, "url"))


def output_array(data: dict) -> str | None:
    return _url(_dig(data, "output", 0, "url"))


def images_array(data: dict) -> str | None:
    return _url(_dig(data, "images", 0, "url"))


def flat_image_url(data: dict) -> str | None:
    return _url(_dig(data, "image_url"))


# Response shapes the gateway has been seen to return, most specific first
EXTRACTION_STRATEGIES: list[tuple[str, Callable[[dict], str | None]]] = [
    ("message_image_url", message_image_url),
    ("message_image", message_image),
    ("data_array", data_array),
    ("output_array", output_array),
    ("images_array", images_array),
    ("flat_image_url", flat_image_url),
]


def extract_image(data: dict) -> tuple[str, str] | None:
    """Return ``(strategy_name, url)`` for the first strategy that matches."""
    for name, strategy in EXTRACTION_STRATEGIES:
        url = strategy(data)
        if url:
            return name, url
    return None


class GenerationClient:
    """
    Client for the multimodal image generation gateway.

    Speaks the chat-completions dialect: one user message whose content is a
    text part followed by zero or more ``image_url`` parts, asking for image
    and text modalities back. Calls are never retried here, a generation
    costs money and the caller decides whether to try again.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.generation_api_key
        self.api_url = api_url or settings.generation_api_url
        self.model = model or settings.generation_model
        self.timeout = timeout or settings.generation_timeout
        self._transport = transport

    def _build_payload(
        self,
        prompt: str,
        reference_images: Sequence[str],
        system_prompt: str | None,
    ) -> dict:
        content: list[dict] = [{"type": "text", "text": prompt}]
        for url in reference_images:
            content.append({"type": "image_url", "image_url": {"url": url}})

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": content})

        return {
            "model": self.model,
            "messages": messages,
            "modalities": ["image", "text"],
        }

    async def generate(
        self,
        prompt: str,
        reference_images: Sequence[str] = (),
        system_prompt: str | None = None,
    ) -> GenerationResult:
        """
        Generate one image.

        Args:
            prompt: Full prompt text, templates already applied
            reference_images: URLs (or data URIs) the model should look at
            system_prompt: Optional system message

        Raises:
            GenerationError: non-success status, unreadable body, or no image
        """
        if not self.api_key:
            raise GenerationError("Generation service API key is not configured")

        payload = self._build_payload(prompt, reference_images, system_prompt)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}",
                    },
                )
        except httpx.TimeoutException as e:
            raise GenerationError(
                f"Generation service did not answer within {self.timeout:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Generation service unreachable: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "Generation service error %s: %s", response.status_code, response.text[:500]
            )
            raise GenerationError(
                f"Generation service error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError("Generation service returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise GenerationError("Generation service returned an unexpected body")

        match = extract_image(data)
        if match is None:
            logger.warning("No image in generation response, keys: %s", sorted(data))
            raise GenerationError("No image returned from AI")

        strategy, image_url = match
        logger.info("Generation succeeded (%s)", strategy)
        return GenerationResult(image_url=image_url, strategy=strategy)


# Singleton instance
generation_client = GenerationClient()
