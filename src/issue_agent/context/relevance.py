"""Heuristic ranking of repository files against an issue's signal."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 10
MAX_WALK_DEPTH = 5
MAX_KEYWORDS_CHECKED = 20
SKIPPED_DIRECTORIES = frozenset({".git", "node_modules", "target", "dist", "build", "__pycache__"})
SCORED_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx", ".rs", ".py", ".go", ".md"})
ENTRY_POINT_MARKERS = ("index", "main", "lib")

REFERENCE_SCORE = 10
KEYWORD_SCORE = 3
README_SCORE = 2
ENTRY_POINT_SCORE = 1


@dataclass(slots=True, frozen=True)
class ScoredFile:
    """A candidate file with its relevance score and the first reason it scored."""

    relative_path: str
    score: int
    reason: str


def find_relevant_files(
    root: Path,
    file_references: Sequence[str],
    keywords: Sequence[str],
    *,
    max_files: int = DEFAULT_MAX_FILES,
) -> list[ScoredFile]:
    """Walk ``root`` and return at most ``max_files`` files ranked by score.

    Ties keep walk order (entries are visited in name order, depth first).
    Files that score zero are dropped.
    """

    references = [reference for reference in file_references if reference]
    checked_keywords = [keyword for keyword in keywords[:MAX_KEYWORDS_CHECKED] if keyword]

    scored = [
        candidate
        for candidate in (
            score_file(relative_path, references, checked_keywords)
            for relative_path in walk_source_files(root)
        )
        if candidate is not None
    ]
    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    return scored[:max_files]


def score_file(
    relative_path: str,
    file_references: Sequence[str],
    keywords: Sequence[str],
) -> ScoredFile | None:
    """Score one file; each rule adds once, on its first match."""

    name = relative_path.rsplit("/", 1)[-1]
    name_lower = name.lower()
    score = 0
    reasons: list[str] = []

    for reference in file_references:
        if reference in relative_path or reference in name:
            score += REFERENCE_SCORE
            reasons.append("referenced in issue")
            break

    for keyword in keywords:
        if keyword.lower() in name_lower:
            score += KEYWORD_SCORE
            reasons.append(f"matches keyword: {keyword}")
            break

    if name == "README.md":
        score += README_SCORE
        reasons.append("README file")

    if any(marker in name for marker in ENTRY_POINT_MARKERS):
        score += ENTRY_POINT_SCORE
        reasons.append("entry point file")

    if score <= 0:
        return None
    return ScoredFile(relative_path=relative_path, score=score, reason=reasons[0])


def walk_source_files(root: Path, *, max_depth: int = MAX_WALK_DEPTH) -> Iterator[str]:
    """Yield POSIX-style relative paths of scorable files under ``root``."""

    yield from _walk(root, root, depth=0, max_depth=max_depth)


def _walk(root: Path, directory: Path, *, depth: int, max_depth: int) -> Iterator[str]:
    if depth > max_depth:
        return
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError as error:
        logger.debug("Skipping unreadable directory %s: %s", directory, error)
        return

    for entry in entries:
        if entry.name.startswith(".") or entry.name in SKIPPED_DIRECTORIES:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file(follow_symlinks=False)
        except OSError as error:
            logger.debug("Skipping unreadable entry %s: %s", entry.path, error)
            continue

        if is_dir:
            yield from _walk(root, Path(entry.path), depth=depth + 1, max_depth=max_depth)
        elif is_file and os.path.splitext(entry.name)[1] in SCORED_EXTENSIONS:
            yield Path(entry.path).relative_to(root).as_posix()
