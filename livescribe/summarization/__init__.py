"""Transcript summarization for LiveScribe."""

from .extractive import summarize_extractive, split_sentences
from .ollama_client import (
    OllamaClient,
    SummarizationError,
    OllamaUnreachableError,
    OllamaServiceError,
    NO_SUMMARY_PLACEHOLDER,
)
from .summarizer import TranscriptSummarizer

__all__ = [
    "summarize_extractive",
    "split_sentences",
    "OllamaClient",
    "SummarizationError",
    "OllamaUnreachableError",
    "OllamaServiceError",
    "NO_SUMMARY_PLACEHOLDER",
    "TranscriptSummarizer",
]
