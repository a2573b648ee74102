"""Snippet extraction from documentation files."""
from .extractor import (
    ExtractedSnippet,
    GeminiSnippetExtractor,
    SnippetExtractor,
    parse_extracted_snippets,
)

__all__ = [
    "ExtractedSnippet",
    "GeminiSnippetExtractor",
    "SnippetExtractor",
    "parse_extracted_snippets",
]
