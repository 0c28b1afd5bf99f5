"""Feature corpus discovery and Gherkin parsing."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import structlog
from gherkin.errors import ParserError
from gherkin.parser import Parser

LOGGER = structlog.get_logger("manual_test_wizard")

FEATURE_SUFFIX = ".feature"


class FeatureLoadError(RuntimeError):
    """Raised when the feature corpus cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def iter_feature_files(root: Path) -> Iterator[Path]:
    """Yield feature files below ``root`` in lexical depth-first walk order.

    Entries of each directory are visited sorted by name and subdirectories are
    descended in place, so ``a.feature``, ``b/x.feature``, ``c.feature`` come out
    in exactly that order.
    """

    if not root.is_dir():
        raise FeatureLoadError(root, "features directory does not exist")
    yield from _walk(root)


def _walk(directory: Path) -> Iterator[Path]:
    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        raise FeatureLoadError(directory, f"cannot list directory ({exc})") from exc
    for entry in entries:
        if entry.is_dir():
            yield from _walk(entry)
        elif entry.is_file() and entry.name.endswith(FEATURE_SUFFIX):
            yield entry


def parse_feature_file(path: Path, parser: Parser | None = None) -> dict[str, Any]:
    """Parse one feature file into a Gherkin document mapping."""

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FeatureLoadError(path, f"cannot read file ({exc})") from exc

    try:
        document = (parser or Parser()).parse(text)
    except ParserError as exc:
        raise FeatureLoadError(path, f"invalid Gherkin ({exc})") from exc

    if not document.get("feature"):
        raise FeatureLoadError(path, "no feature found")
    return document


def scan_features(root: Path) -> Iterator[tuple[Path, dict[str, Any]]]:
    """Yield ``(path, document)`` for every feature file, failing on the first bad one."""

    parser = Parser()
    for path in iter_feature_files(root):
        document = parse_feature_file(path, parser)
        LOGGER.debug("feature_parsed", path=str(path), feature=document["feature"].get("name", ""))
        yield path, document
