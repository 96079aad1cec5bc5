"""Ollama client for sending summarization prompts and getting responses."""

import logging
import aiohttp
from typing import List

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = (
    "Summarize this transcript concisely in 2-4 sentences. "
    "Focus on the main points and key information.\n\n"
    "Transcript:\n{transcript}\n\nSummary:"
)

NO_SUMMARY_PLACEHOLDER = "No summary generated"


class SummarizationError(Exception):
    """Base class for summarization service failures."""


class OllamaUnreachableError(SummarizationError):
    """The Ollama service could not be reached at all."""

    def __init__(self, url: str, reason: object):
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot reach Ollama at {url}: {reason}")


class OllamaServiceError(SummarizationError):
    """Ollama answered with a non-success status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Ollama error: {status} - {body}")


class OllamaClient:
    """Simple client for a local Ollama generation service."""

    def __init__(self, base_url: str, model: str):
        """Initialize Ollama client.

        Args:
            base_url: Service address, e.g. http://localhost:11434
            model: Model identifier to generate with
        """
        self.service_url = base_url
        self.base_url = base_url.rstrip("/")
        self.model = model

        logger.info(f"OllamaClient initialized for {self.base_url} with model: {model}")

    async def send_prompt(self, prompt: str, temperature: float = 0.7, max_tokens: int = 256) -> str:
        """Send a prompt to Ollama and get the generated text.

        Args:
            prompt: Prompt to send
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (num_predict)

        Returns:
            Trimmed generated text, or a placeholder when nothing was generated

        Raises:
            OllamaUnreachableError: If the service cannot be reached
            OllamaServiceError: If the service returns a non-success status
        """
        data = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": max_tokens,
                "temperature": temperature,
            },
        }

        url = f"{self.base_url}/api/generate"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=data) as response:
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        raise OllamaServiceError(response.status, error_text)

                    result = await response.json(content_type=None)
        except aiohttp.ClientConnectionError as e:
            logger.error(f"Ollama unreachable at {self.base_url}: {e}")
            raise OllamaUnreachableError(self.service_url, e) from e

        generated = ((result or {}).get("response") or "").strip()
        if not generated:
            logger.warning("Ollama returned no text")
            return NO_SUMMARY_PLACEHOLDER
        return generated

    async def summarize(self, transcript: str, max_tokens: int = 256, temperature: float = 0.7) -> str:
        """Summarize a transcript in a few sentences."""
        prompt = SUMMARY_PROMPT.format(transcript=transcript)
        logger.debug(f"Requesting summary of {len(transcript)} chars from {self.model}")
        return await self.send_prompt(prompt, temperature=temperature, max_tokens=max_tokens)

    async def list_models(self) -> List[str]:
        """List the models installed on the service, for connectivity checks.

        Raises:
            OllamaUnreachableError: If the service cannot be reached
            OllamaServiceError: If the service returns a non-success status
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"{self.base_url}/api/tags") as response:
                    if not 200 <= response.status < 300:
                        error_text = await response.text()
                        raise OllamaServiceError(response.status, error_text)

                    result = await response.json(content_type=None)
        except aiohttp.ClientConnectionError as e:
            raise OllamaUnreachableError(self.service_url, e) from e

        return [model.get("name", "") for model in (result or {}).get("models", [])]
