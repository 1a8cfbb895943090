"""Receipt extraction provider backed by OpenAI vision models.

This service encapsulates the calls to the language model: turning a
receipt image into a JSON-ish answer, and asking the model to repair
an earlier answer whose numbers did not add up. It does
no parsing or validation of its own; it returns the raw response text
and leaves everything else to :mod:`splitter.services.reconciler`.

Any object with the same two coroutine methods can stand in for
:class:`ExtractionService` (see :class:`ExtractionProvider`); the tests
use scripted fakes.

Diagnostic logging can be enabled by setting env var EXTRACTION_DEBUG=1.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from openai import AsyncOpenAI

from splitter.core.config import settings
from splitter.utils.image_processing import preprocess_image
from splitter.utils.prompts import (
    CORRECTION_SYSTEM_PROMPT,
    get_correction_prompt,
    get_default_extraction_prompt,
)

logger = logging.getLogger(__name__)


class ExtractionProvider(Protocol):
    """Anything that can read a receipt image and repair its own output."""

    async def extract(self, image_bytes: bytes, retry: bool = False) -> str:
        ...

    async def correct(self, payload: Dict[str, Any], discrepancies: List[str]) -> str:
        ...


class ExtractionService:
    """OpenAI implementation of :class:`ExtractionProvider`."""

    def __init__(
        self,
        model: Optional[str] = None,
        correction_model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model: str = model or settings.EXTRACTION_MODEL
        self.correction_model: str = correction_model or settings.CORRECTION_MODEL
        self.debug: bool = settings.EXTRACTION_DEBUG
        self._client = client
        self._prepared: Optional[Tuple[bytes, bytes]] = None
        if self.debug:
            logger.info("[extraction:init] model=%s correction_model=%s", self.model, self.correction_model)

    def _get_client(self) -> AsyncOpenAI:
        """Create the OpenAI client on first use so imports never need a key."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
            )
        return self._client

    def _image_to_base64(self, data: bytes) -> str:
        """Encode raw image bytes as a base64 string."""
        return base64.b64encode(data).decode("utf-8")

    async def _prepare(self, image_bytes: bytes) -> bytes:
        """Preprocess off the event loop, reusing the result for repeat calls on the same image."""
        if self._prepared is not None and self._prepared[0] == image_bytes:
            return self._prepared[1]
        loop = asyncio.get_running_loop()
        processed = await loop.run_in_executor(None, preprocess_image, image_bytes)
        self._prepared = (image_bytes, processed)
        return processed

    async def extract(self, image_bytes: bytes, retry: bool = False) -> str:
        """Ask the vision model for the receipt contents.

        ``retry`` switches the prompt to the variant that tells the model
        its previous arithmetic was wrong.
        """
        processed = await self._prepare(image_bytes)
        b64 = self._image_to_base64(processed)
        if self.debug:
            logger.info("[extraction] extract model=%s size=%d retry=%s", self.model, len(processed), retry)
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": get_default_extraction_prompt(retry=retry)},
                        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{b64}"}},
                    ],
                }
            ],
            max_tokens=settings.EXTRACTION_MAX_TOKENS,
        )
        text = response.choices[0].message.content or ""
        if self.debug:
            logger.info("[extraction] response preview=%r", text[:200])
        return text

    async def correct(self, payload: Dict[str, Any], discrepancies: List[str]) -> str:
        """Ask the model to fix ``payload`` given the discrepancy messages."""
        if self.debug:
            logger.info("[extraction] correct model=%s discrepancies=%d", self.correction_model, len(discrepancies))
        response = await self._get_client().chat.completions.create(
            model=self.correction_model,
            messages=[
                {"role": "system", "content": CORRECTION_SYSTEM_PROMPT},
                {"role": "user", "content": get_correction_prompt(payload, discrepancies)},
            ],
            max_tokens=settings.CORRECTION_MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
