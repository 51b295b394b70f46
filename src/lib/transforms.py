"""
Tree transform passes

The Transformer runs, in this fixed order:
    1. directives_apply   one pre-order traversal dispatching containerDirective
                          nodes to their DirectiveRegistry handlers
    2. codeMeta_capture   copy code block meta into a ``metastring`` property
    3. imageSize_promote  move ``__width__``/``__height__`` query parameters
                          into width/height properties
    4. links_embed        replace standalone-link paragraphs by embed nodes

Every pass mutates the tree in place and returns it.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import unquote, urlsplit, urlunsplit

from ..config.settings import AppSettings, appsettings
from ..models.directives import DirectiveContext, VisitAction
from ..models.document import EmbedDescriptor
from .directives import DirectiveRegistry
from .parser import Node
from .urls import embedKind_classify, httpUrl_is
from .log import LOG


SIZE_PARAMETERS = ('__width__', '__height__')


def nodes_walk(node: Node, parent: Optional[Node] = None, index: int = 0) -> Iterator[Tuple[Node, Optional[Node], int]]:
    """
    Pre-order walk yielding (node, parent, index) triples.

    Not safe against structural mutation; passes that replace or splice
    nodes do their own index-based loop.
    """
    yield node, parent, index
    for child_index, child in enumerate(list(node.children)):
        yield from nodes_walk(child, node, child_index)


def directives_apply(root: Node, registry: DirectiveRegistry, metadata: Optional[Dict[str, Any]] = None) -> Node:
    """
    Dispatch every containerDirective to its registered handler.

    The traversal is pre-order and index based, re-reading the sibling
    count after each visit: a handler may splice siblings that follow its
    node, and the walk continues with whatever now sits at the next index.
    A handler returning VisitAction.SKIP keeps the walk out of its node's
    children.

    Args:
        root: Document root
        registry: Directive lookup table
        metadata: Caller bag exposed to handlers through the context

    Returns:
        The same root, transformed
    """
    bag = metadata if metadata is not None else {}

    def children_visit(parent: Node, ancestors: List[Node]) -> None:
        path = ancestors + [parent]
        index = 0
        while index < len(parent.children):
            node = parent.children[index]
            action: Optional[VisitAction] = None

            if node.type == 'containerDirective':
                spec = registry.spec_get(node.name or '')
                if spec is None:
                    LOG(f"No handler for directive '{node.name}' at line {node.line_number}", level=2)
                else:
                    LOG(f"Applying '{spec.name}' to '{node.name}' at line {node.line_number}", level=3)
                    context = DirectiveContext(
                        node=node, parent=parent, index=index, ancestors=path, metadata=bag
                    )
                    action = spec.handler(context)

            if action is not VisitAction.SKIP and node.children:
                children_visit(node, path)
            index += 1

    children_visit(root, [])
    return root


def codeMeta_capture(root: Node) -> Node:
    """Expose the verbatim info-string remainder of code blocks as ``metastring``"""
    for node, _parent, _index in nodes_walk(root):
        if node.type == 'code' and node.meta:
            node.properties['metastring'] = node.meta
    return root


def imageUrl_split(url: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Remove the reserved size parameters from an image URL.

    Other query parameters keep their order and encoding; relative URLs
    stay relative.

    Args:
        url: Image URL, possibly carrying ``__width__``/``__height__``

    Returns:
        (clean_url, width, height); width/height are None when absent or
        empty, and the URL is returned unchanged when neither is present

    Example:
        >>> imageUrl_split('/img/a.png?v=1&__width__=100&__height__=50')
        ('/img/a.png?v=1', '100', '50')
        >>> imageUrl_split('https://cdn.example.com/a.png?__width__=80')
        ('https://cdn.example.com/a.png', '80', None)
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url, None, None

    if not parts.query:
        return url, None, None

    found: Dict[str, Optional[str]] = {}
    kept: List[str] = []
    for pair in parts.query.split('&'):
        key, _sep, value = pair.partition('=')
        if unquote(key) in SIZE_PARAMETERS:
            found[unquote(key)] = unquote(value) or None
        else:
            kept.append(pair)

    width = found.get('__width__')
    height = found.get('__height__')
    if not width and not height:
        return url, None, None

    clean = urlunsplit((parts.scheme, parts.netloc, parts.path, '&'.join(kept), parts.fragment))
    return clean, width, height


def imageSize_promote(root: Node) -> Node:
    """Turn size query parameters of images into width/height properties"""
    for node, _parent, _index in nodes_walk(root):
        if node.type != 'image' or not node.url:
            continue
        clean, width, height = imageUrl_split(node.url)
        if width is None and height is None:
            continue
        node.url = clean
        if width:
            node.properties['width'] = width
        if height:
            node.properties['height'] = height
    return root


def standaloneLink_find(paragraph: Node) -> Optional[Node]:
    """
    Return the link of a paragraph that contains nothing else.

    Whitespace-only text and line breaks around the link are allowed.
    """
    children = paragraph.children
    link_index = next((i for i, child in enumerate(children) if child.type == 'link'), None)
    if link_index is None:
        return None

    def is_filler(node: Node) -> bool:
        if node.type == 'text':
            return (node.value or '').strip() == ''
        return node.type == 'break'

    others = children[:link_index] + children[link_index + 1:]
    if all(is_filler(node) for node in others):
        return children[link_index]
    return None


def links_embed(root: Node) -> Node:
    """
    Replace paragraphs holding a single external link by embed placeholders.

    The embed node takes the paragraph's place in its parent and carries
    the URL and its EmbedKind (``attributes['kind']``).
    """
    def children_visit(parent: Node) -> None:
        for index, node in enumerate(parent.children):
            if node.type == 'paragraph' and node.hint is None:
                link = standaloneLink_find(node)
                if link is not None and link.url and httpUrl_is(link.url):
                    descriptor = EmbedDescriptor(url=link.url, kind=embedKind_classify(link.url))
                    parent.children[index] = Node(
                        'embed',
                        url=descriptor.url,
                        attributes={'kind': descriptor.kind.value},
                        line_number=node.line_number,
                    )
                    LOG(f"Embedding {descriptor.kind.value} link {descriptor.url}", level=3)
                    continue
            if node.children:
                children_visit(node)

    children_visit(root)
    return root


class Transformer:
    """
    Runs all tree passes over a parsed document, in their fixed order.
    """

    def __init__(
        self,
        registry: Optional[DirectiveRegistry] = None,
        settings: Optional[AppSettings] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize transformer

        Args:
            registry: Directive registry, built from settings if omitted
            settings: Rendering settings, defaults to the appsettings singleton
            metadata: Caller bag handed to directive handlers
        """
        self.settings = settings or appsettings
        self.registry = registry or DirectiveRegistry(self.settings)
        self.metadata = metadata if metadata is not None else {}

    def transform(self, root: Node) -> Node:
        """
        Apply every pass to the tree.

        Args:
            root: Document root from Parser.parse()

        Returns:
            The same root, transformed in place
        """
        directives_apply(root, self.registry, self.metadata)
        codeMeta_capture(root)
        imageSize_promote(root)
        links_embed(root)
        return root
