"""
Document-level data models

Value objects produced by directive transforms and extractors. The ones
that end up inside data-* attributes know how to turn themselves into the
plain dicts that get JSON-encoded.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ChartDataPoint:
    """One ``name: value`` line of a chart payload"""
    name: str
    value: float

    def toDict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


class EmbedKind(str, Enum):
    """
    Classification of a standalone link.

    Checked in declaration order; the first matching kind wins.
    """
    TWEET = "tweet"
    YOUTUBE = "youtube"
    GITHUB = "github"
    GENERIC_CARD = "generic-card"


@dataclass
class EmbedDescriptor:
    """
    Placeholder left where a standalone link paragraph used to be.

    Resolution (fetching tweets, OGP metadata, ...) happens outside the
    pipeline.
    """
    url: str
    kind: EmbedKind


@dataclass
class CodeTab:
    """
    A single tab of a :::code-tabs block

    Attributes:
        language: Highlighting language (defaults to "text")
        label: Tab caption
        code: Verbatim code block content
        meta: Raw info-string remainder, None when empty
    """
    language: str
    label: str
    code: str
    meta: Optional[str] = None

    def toDict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "language": self.language,
            "label": self.label,
            "code": self.code,
        }
        if self.meta:
            result["meta"] = self.meta
        return result


@dataclass
class CardData:
    """
    A card collected by a :::columns block

    Attributes:
        title: Optional card heading
        href: Optional link target for the whole card
        icon: Optional icon name
        content: Flattened text content of the card body
    """
    title: Optional[str] = None
    href: Optional[str] = None
    icon: Optional[str] = None
    content: str = ""

    def toDict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key in ("title", "href", "icon"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result["content"] = self.content
        return result


@dataclass
class TocNode:
    """
    Table-of-contents entry

    Attributes:
        text: Trimmed heading text
        id: Heading element id (anchor target)
        level: Heading level, 1 for h1
        children: Nested entries
    """
    text: str
    id: str
    level: int
    children: List['TocNode'] = field(default_factory=list)

    def toDict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "id": self.id,
            "level": self.level,
            "children": [child.toDict() for child in self.children],
        }


@dataclass
class RenderResult:
    """
    Everything markdown_render() produces for one document

    Attributes:
        html: Rendered HTML fragment
        toc: Table-of-contents forest extracted from the HTML
        front_matter: Parsed YAML front matter ({} when absent)
        tree: Transformed AST, kept for callers that inspect nodes
    """
    html: str
    toc: List[TocNode] = field(default_factory=list)
    front_matter: Dict[str, Any] = field(default_factory=dict)
    tree: Optional[Any] = None
