"""Keyword and file-reference extraction from free issue text."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

MIN_WORD_CHARS = 4

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can", "need", "dare",
        "ought", "used", "to", "of", "in", "for", "on", "with", "at", "by",
        "from", "as", "into", "through", "during", "before", "after", "above",
        "below", "between", "under", "again", "further", "then", "once", "here",
        "there", "when", "where", "why", "how", "all", "each", "few", "more",
        "most", "other", "some", "such", "no", "nor", "not", "only", "own",
        "same", "so", "than", "too", "very", "just", "and", "but", "if", "or",
        "because", "until", "while", "this", "that", "these", "those", "it",
        "its", "i", "me", "my", "we", "our", "you", "your", "he", "she", "they",
    },
)  # fmt: skip

# PascalCase/camelCase compounds, snake_case compounds, SCREAMING_SNAKE tokens.
IDENTIFIER_PATTERN = re.compile(
    r"\b([A-Z]?[a-z]+[A-Z][a-zA-Z]*|[a-z]+_[a-z_]+|[A-Z][A-Z_]+)\b",
)
_NON_WORD_CHARS = re.compile(r"[^a-z0-9\s]")

# Longer extensions first so "json" is not cut short at "js".
REFERENCE_EXTENSIONS = (
    "tsx", "jsx", "json", "yaml", "yml", "toml", "ts", "js", "rs", "py", "go", "md",
)  # fmt: skip
FILE_REFERENCE_PATTERNS = (
    re.compile(
        r"(?:^|[\s`'\"])([a-zA-Z0-9_\-./]+\.(?:" + "|".join(REFERENCE_EXTENSIONS) + r"))"
        r"(?![a-zA-Z0-9])",
        re.MULTILINE,
    ),
    re.compile(r"(?:src|lib|packages?)/[a-zA-Z0-9_\-./]+"),
    re.compile(r"(?:in|from|file|module)\s+[`']([a-zA-Z0-9_\-./]+)[`']", re.IGNORECASE),
)
_QUOTE_CHARS = "`'\""


@dataclass(slots=True, frozen=True)
class ExtractedSignal:
    """References and keywords derived from one issue's text."""

    file_references: tuple[str, ...]
    keywords: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> ExtractedSignal:
        return cls(
            file_references=tuple(extract_file_references(text)),
            keywords=tuple(extract_keywords(text)),
        )


def extract_keywords(text: str) -> list[str]:
    """Return identifier-shaped tokens followed by significant lowercase words.

    Duplicates collapse to their first occurrence, so the result behaves as a
    set while keeping a stable order for callers that only look at a prefix.
    """

    identifiers = [match.group(1) for match in IDENTIFIER_PATTERN.finditer(text)]
    words = [
        word
        for word in _NON_WORD_CHARS.sub(" ", text.lower()).split()
        if len(word) >= MIN_WORD_CHARS and word not in STOP_WORDS
    ]
    return _unique([*identifiers, *words])


def extract_file_references(text: str) -> list[str]:
    """Return path-like tokens mentioned in the text, first match wins."""

    references: list[str] = []
    for pattern in FILE_REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            raw = match.group(1) if match.groups() else match.group(0)
            reference = raw.strip(_QUOTE_CHARS).rstrip(".")
            if reference:
                references.append(reference)
    return _unique(references)


def issue_text(title: str, body: str | None, comment_bodies: Iterable[str] = ()) -> str:
    """Concatenate the free text an issue exposes to the extractors."""

    return "\n".join([title, body or "", "\n".join(comment_bodies)])


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))
