"""
Mood Extractor
==============
Derives an entry's moods from its editor document.

The editor stores rich text as a JSON tree. Users tag parts of their day
by inserting mood markers (nodes of type ``moodBlock`` with an
``attrs.mood`` value). This module:

    1. Checks that a value is a well-formed document at all
    2. Parses it into a closed set of node types, bounding nesting depth
    3. Walks the tree depth-first (pre-order) collecting valid moods
    4. Picks a single dominant mood by frequency

Anything malformed *inside* a document (unknown node types, missing attrs,
moods outside the allowed set, non-object children) is ignored rather
than rejected. Only over-deep documents raise.

Dominant mood tie-break: the input is scanned once, left to right, and the
leader only changes on a strictly greater count. The first mood to reach
the winning count wins. Iterating a table of counts instead of the input
gives a different answer, so don't.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from app.models.mood import VALID_MOODS

DOCUMENT_KIND = "doc"
MOOD_MARKER_KIND = "moodBlock"

MAX_DOCUMENT_DEPTH = 64


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class DocumentTooDeepError(ValueError):
    """Document nesting exceeds the configured maximum depth."""

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(f"Document nesting exceeds maximum depth of {max_depth}")


# ---------------------------------------------------------------------------
# Document tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MoodMarkerNode:
    """A mood marker. ``mood`` is None when the marker carries no valid mood."""

    mood: Optional[str] = None
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class ContainerNode:
    """Any other node: paragraphs, text, lists, headings..."""

    kind: str
    attributes: dict[str, Any] = field(default_factory=dict)
    children: tuple[Node, ...] = ()


Node = Union[MoodMarkerNode, ContainerNode]


@dataclass(frozen=True)
class Document:
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class ExtractedMoods:
    moods: list[str]
    dominant_mood: Optional[str]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def is_valid_mood(value: object) -> bool:
    return isinstance(value, str) and value in VALID_MOODS


def is_valid_document(value: object) -> bool:
    """True if *value* is a mapping with type "doc" and a list of content."""
    if not isinstance(value, Mapping):
        return False
    return value.get("type") == DOCUMENT_KIND and isinstance(value.get("content"), list)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_document(value: object, max_depth: int = MAX_DOCUMENT_DEPTH) -> Document:
    """Parse a raw editor document into the typed tree.

    Raises ValueError if *value* is not a document and DocumentTooDeepError
    if any node sits deeper than *max_depth* (top-level nodes are depth 1).
    """
    if not is_valid_document(value):
        raise ValueError("Not an editor document")
    return Document(children=_parse_children(value["content"], 1, max_depth))


def _parse_children(raw_children: list, depth: int, max_depth: int) -> tuple[Node, ...]:
    nodes = [raw for raw in raw_children if isinstance(raw, Mapping)]
    if nodes and depth > max_depth:
        raise DocumentTooDeepError(max_depth)
    return tuple(_parse_node(raw, depth, max_depth) for raw in nodes)


def _parse_node(raw: Mapping, depth: int, max_depth: int) -> Node:
    raw_children = raw.get("content")
    children = (
        _parse_children(raw_children, depth + 1, max_depth)
        if isinstance(raw_children, list)
        else ()
    )

    attrs = raw.get("attrs")
    attributes = dict(attrs) if isinstance(attrs, Mapping) else {}

    if raw.get("type") == MOOD_MARKER_KIND:
        mood = attributes.get("mood")
        return MoodMarkerNode(
            mood=mood if is_valid_mood(mood) else None,
            children=children,
        )

    kind = raw.get("type")
    return ContainerNode(
        kind=kind if isinstance(kind, str) else "",
        attributes=attributes,
        children=children,
    )


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def unique_in_order(values: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping the first occurrence of each value."""
    return list(dict.fromkeys(values))


def extract_moods(document: Document) -> list[str]:
    """Moods found in *document*, in order of first appearance."""
    found: list[str] = []

    def visit(node: Node) -> None:
        if isinstance(node, MoodMarkerNode) and node.mood is not None:
            found.append(node.mood)
        for child in node.children:
            visit(child)

    for node in document.children:
        visit(node)

    return unique_in_order(found)


def dominant_mood(moods: Iterable[str]) -> Optional[str]:
    """Most frequent mood in *moods*; the first to reach the top count wins.

    Accepts repeated values (the heatmap passes one vote per entry).
    Values outside the mood set are ignored. Returns None for no moods.
    """
    counts: dict[str, int] = {}
    best: Optional[str] = None
    best_count = 0

    for mood in moods:
        if not is_valid_mood(mood):
            continue
        counts[mood] = counts.get(mood, 0) + 1
        if counts[mood] > best_count:
            best = mood
            best_count = counts[mood]

    return best


def process_content(value: object, max_depth: int = MAX_DOCUMENT_DEPTH) -> ExtractedMoods:
    """Derive moods and dominant mood from raw entry content.

    Non-documents (None, strings, objects without type "doc"...) yield no
    moods. Raises DocumentTooDeepError for documents nested too deeply.
    """
    if not is_valid_document(value):
        return ExtractedMoods(moods=[], dominant_mood=None)

    moods = extract_moods(parse_document(value, max_depth))
    return ExtractedMoods(moods=moods, dominant_mood=dominant_mood(moods))
