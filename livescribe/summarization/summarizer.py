"""Chooses between the extractive summary and the Ollama service."""

import logging
from typing import Callable

from .extractive import summarize_extractive
from .ollama_client import OllamaClient

logger = logging.getLogger(__name__)


class TranscriptSummarizer:
    """Summarizes a transcript with Ollama when configured, locally otherwise."""

    def __init__(self, client_factory: Callable[[str, str], OllamaClient] = OllamaClient):
        """Initialize transcript summarizer.

        Args:
            client_factory: Builds a client from (service_url, model)
        """
        self.client_factory = client_factory

    def uses_service(self, settings) -> bool:
        return bool(settings.ollama_url and settings.ollama_model)

    async def summarize(self, text: str, settings) -> str:
        """Summarize transcript text.

        Args:
            text: Full transcript text
            settings: SessionSettings with the Ollama address, model and
                decoding parameters

        Returns:
            Summary text ("" for an empty transcript)

        Raises:
            SummarizationError: If the Ollama service fails
        """
        text = (text or "").strip()
        if not text:
            return ""

        if not self.uses_service(settings):
            logger.info("No Ollama service configured, using extractive summary")
            return summarize_extractive(text)

        client = self.client_factory(settings.ollama_url, settings.ollama_model)
        return await client.summarize(
            text,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
