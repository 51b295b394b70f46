"""
Parser-specific data models

Type-safe structures shared between the parser, the transform passes and
the compiler.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class DirectiveInfo:
    """
    Result of splitting a directive opener into its parts

    Returned by directiveInfo_parse() for the text that follows the colons
    of a ``:::name[label]{attrs}`` fence.

    Attributes:
        name: Directive name (e.g., "message", "chart-radar")
        label: Text between square brackets, None when absent
        attributes: Parsed brace attributes in source order

    Example:
        For opener ``details[Click me]{#intro .wide open}``:
        DirectiveInfo(
            name="details",
            label="Click me",
            attributes={"id": "intro", "class": "wide", "open": ""}
        )
    """
    name: str
    label: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class RenderHint:
    """
    Element override a directive transform attaches to a node

    A node without a hint renders with its default tag. A node with a hint
    renders as ``tag`` with ``properties`` merged onto its attributes.

    Attributes:
        tag: HTML element name (e.g., "aside", "div", "details")
        properties: Attribute map; None values are omitted when rendering
        owner: Name of the transform that claimed the node
    """
    tag: str
    properties: Dict[str, Optional[str]] = field(default_factory=dict)
    owner: str = ""


class RenderHintConflict(RuntimeError):
    """Raised when a second transform tries to claim an already claimed node"""
