"""
Directive specification and metadata models

Defines the structure and categories of wikidown container directives for
registry lookup, handler dispatch and documentation.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..lib.parser import Node


class DirectiveCategory(Enum):
    """
    Categories of wikidown directives

    Used for organization and documentation generation.
    """
    CALLOUT = "callout"      # :::message, :::details
    REFERENCE = "reference"  # :::param-field
    CHART = "chart"          # :::chart-*
    CODE = "code"            # :::code-tabs
    LAYOUT = "layout"        # :::columns, :::card, :::tabs, :::tab


class VisitAction(Enum):
    """
    Traversal signal a directive handler may return.

    CONTINUE descends into the node's children as usual, SKIP leaves them
    unvisited (used once a handler has consumed its own children).
    """
    CONTINUE = "continue"
    SKIP = "skip"


@dataclass
class DirectiveContext:
    """
    Everything a directive handler may look at or touch.

    Attributes:
        node: The directive node being visited
        parent: Its parent node (never None for directives)
        index: Position of node within parent.children
        ancestors: Nodes from the root down to parent, outermost first
        metadata: Caller-supplied bag passed through markdown_render()
    """
    node: 'Node'
    parent: 'Node'
    index: int
    ancestors: List['Node'] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def previousSibling_get(self) -> Optional['Node']:
        """The sibling immediately before node, if any"""
        if self.index == 0:
            return None
        return self.parent.children[self.index - 1]


@dataclass
class DirectiveSpec:
    """
    Specification for a wikidown directive

    Attributes:
        name: Directive name as written after the colons
        category: Category for organization
        description: Human-readable description
        handler: Transform function (DirectiveContext) -> Optional[VisitAction]
        is_wildcard: Whether the name is a prefix pattern (e.g., chart-*)
        examples: Example usage strings
        aliases: Alternative names for the directive
    """
    name: str
    category: DirectiveCategory
    description: str
    handler: Callable[[DirectiveContext], Optional[VisitAction]]
    is_wildcard: bool = False
    examples: List[str] = field(default_factory=list)
    aliases: List[str] = field(default_factory=list)

    def matches(self, directive_name: str) -> bool:
        """
        Check if this spec matches a directive name

        Handles wildcards (e.g., 'chart-*' matches 'chart-radar')

        Args:
            directive_name: Name to check

        Returns:
            True if this spec handles the directive
        """
        if self.name == directive_name:
            return True

        if directive_name in self.aliases:
            return True

        if self.is_wildcard and '-' in self.name:
            # 'chart-*' -> 'chart-'
            prefix = self.name.rsplit('-', 1)[0] + '-'
            if directive_name.startswith(prefix) and len(directive_name) > len(prefix):
                return True

        return False

    def suffix_get(self, directive_name: str) -> str:
        """
        Wildcard part of a matched directive name.

        Example:
            >>> spec.suffix_get('chart-radar')
            'radar'
        """
        if not self.is_wildcard:
            return ''
        prefix = self.name.rsplit('-', 1)[0] + '-'
        return directive_name[len(prefix):]
