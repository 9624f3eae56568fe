"""
Access to the generative-language service used for rubric structuring and
visual judgment.

The pipeline only depends on the ``Oracle`` protocol, so tests can supply a
deterministic stub instead of calling OpenAI.
"""

import base64
import netrc
import os
from typing import Protocol, Sequence

from openai import AsyncOpenAI

from .config import MAX_TOKENS, OPENAI_MODEL


class Oracle(Protocol):
    """Text (and image) in, text out."""

    async def complete(
        self,
        prompt: str,
        images: Sequence[bytes] = (),
        *,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str: ...


def resolve_api_key(api_key: str | None = None) -> str:
    """
    Find the OpenAI API key.

    Priority: 1. Argument, 2. .netrc (machine OPENAI), 3. OPENAI_API_KEY.

    Raises:
        ValueError: If no API key can be found.
    """
    if api_key is None:
        try:
            secrets = netrc.netrc()
            auth = secrets.authenticators("OPENAI")
            if auth:
                api_key = auth[0]  # auth[0] is the login info
        except (FileNotFoundError, netrc.NetrcParseError):
            pass

    api_key = api_key or os.environ.get("OPENAI_API_KEY")

    if not api_key:
        raise ValueError(
            "OpenAI API key required. Set OPENAI_API_KEY environment variable, "
            "add machine OPENAI to your .netrc file, or pass api_key parameter."
        )
    return api_key


def image_part(png_bytes: bytes) -> dict:
    """Wrap PNG bytes as a chat-completions image content part."""
    encoded = base64.b64encode(png_bytes).decode("utf-8")
    return {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}}


class OpenAIOracle:
    """
    Oracle backed by OpenAI chat completions (vision-capable model).
    """

    def __init__(
        self,
        model: str = OPENAI_MODEL,
        api_key: str | None = None,
        max_tokens: int = MAX_TOKENS,
    ) -> None:
        """
        Initialize the OpenAI oracle.

        Args:
            model: OpenAI model to use (default: gpt-4o).
            api_key: OpenAI API key. Falls back to .netrc, then OPENAI_API_KEY.
            max_tokens: Completion token cap per request.

        Raises:
            ValueError: If no API key is provided or found.
        """
        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(api_key=resolve_api_key(api_key))

    async def complete(
        self,
        prompt: str,
        images: Sequence[bytes] = (),
        *,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """
        Send one request and return the text of the first choice.

        Args:
            prompt: User message text.
            images: PNG images sent after the text, in order.
            system: Optional system prompt.
            temperature: Sampling temperature; model default when None.

        Returns:
            Response text (empty string if the model returned no content).
        """
        messages: list[dict] = []
        if system:
            messages.append({"role": "system", "content": system})

        if images:
            content: list[dict] | str = [{"type": "text", "text": prompt}]
            content.extend(image_part(img) for img in images)
        else:
            content = prompt
        messages.append({"role": "user", "content": content})

        kwargs: dict = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""
