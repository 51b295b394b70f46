"""
Markdown parser producing a wikidown document tree

Wraps markdown-it-py (CommonMark plus tables, strikethrough, autolink
literals and YAML front matter) and converts its token stream into a
tree of Node objects shaped like mdast: block kinds such as paragraph,
heading, list, code, table and containerDirective, inline kinds such as
text, emphasis, link and image.

Directive syntax supported on top of CommonMark:

    :::name[label]{#id .class key="value" flag}
    ...markdown...
    :::

and, for layouts that must nest (produced by the columns preprocessor):

    <Columns cols="2">
    <Card title="A">
    ...markdown...
    </Card>
    </Columns>

Both forms become ``containerDirective`` nodes.

Example:
    >>> root = Parser(":::message{.alert}\\nCareful\\n:::").parse()
    >>> root.children[0].type, root.children[0].name
    ('containerDirective', 'message')
    >>> root.children[0].attributes
    {'class': 'alert'}
"""

import html
import re
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

import yaml
from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.container import container_plugin
from mdit_py_plugins.front_matter import front_matter_plugin

from ..config.settings import AppSettings, appsettings
from ..models.parser import DirectiveInfo, RenderHint, RenderHintConflict
from .log import LOG


@dataclass
class Node:
    """
    A node in the document tree

    Only the fields relevant to a node's kind are populated; the rest keep
    their defaults.

    Attributes:
        type: Node kind (e.g., "paragraph", "code", "containerDirective")
        children: Child nodes in document order
        value: Literal content (text, inlineCode, code, html)
        name: Directive name for containerDirective nodes
        attributes: Directive attributes in source order
        url: Target of link/image/embed nodes
        title: Link/image title
        alt: Image alternative text
        lang: Code block language (first word of the info string)
        meta: Rest of the code block info string, None when empty
        depth: Heading level
        ordered: List kind
        start: First number of an ordered list
        align: Table cell alignment ("left", "center", "right")
        header: Table cell belongs to the header row
        hidden: Paragraph inside a tight list (rendered without <p>)
        label: Paragraph synthesized from a directive [label]
        trusted: HTML synthesized by the pipeline, safe to emit raw
        hint: Render hint claimed by a directive transform
        properties: Extra attributes attached by transform passes
        line_number: 1-based source line of the node's first line
    """
    type: str
    children: List['Node'] = field(default_factory=list)
    value: Optional[str] = None
    name: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    lang: Optional[str] = None
    meta: Optional[str] = None
    depth: Optional[int] = None
    ordered: Optional[bool] = None
    start: Optional[int] = None
    align: Optional[str] = None
    header: bool = False
    hidden: bool = False
    label: bool = False
    trusted: bool = False
    hint: Optional[RenderHint] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    line_number: int = 0

    def claim(self, owner: str, tag: str, properties: Optional[Dict[str, Optional[str]]] = None) -> RenderHint:
        """
        Attach a render hint to this node.

        A node has a single writer: once claimed by one transform, a claim
        by any other transform is a programming error.

        Args:
            owner: Name of the claiming transform
            tag: Element the node renders as
            properties: Attributes for that element

        Returns:
            The hint now attached to the node

        Raises:
            RenderHintConflict: If another owner already claimed the node
        """
        if self.hint is not None and self.hint.owner != owner:
            raise RenderHintConflict(
                f"node '{self.name or self.type}' at line {self.line_number} already "
                f"claimed by '{self.hint.owner}', refusing claim by '{owner}'"
            )
        self.hint = RenderHint(tag=tag, properties=dict(properties or {}), owner=owner)
        return self.hint

    def children_clear(self) -> None:
        """Drop all children; the node renders as an empty element"""
        self.children = []

    def is_directive(self, name: Optional[str] = None) -> bool:
        """True for containerDirective nodes (optionally with a given name)"""
        if self.type != "containerDirective":
            return False
        return name is None or self.name == name


# Directive opener: name, optional [label], optional {attributes}
DIRECTIVE_NAME = re.compile(r'[A-Za-z][\w-]*')
DIRECTIVE_ATTRIBUTES = re.compile(r'\{(?P<attrs>.*)\}')

ATTRIBUTE_TOKEN = re.compile(r'''
    \#(?P<id>[^\s#.{}"'=]+)
  | \.(?P<cls>[^\s#.{}"'=]+)
  | (?P<key>[^\s#.{}"'=][^\s{}"'=]*)
    (?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s"'=<>`{}]+)))?
''', re.VERBOSE)

TAG_OPEN = re.compile(r'^<(?P<tag>Columns|Card)(?P<attrs>(?:\s[^>]*)?)>\s*$')
TAG_CLOSE = re.compile(r'^</(?P<tag>Columns|Card)>\s*$')
TAG_ATTRIBUTE = re.compile(r'''([\w:-]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?''')

CELL_ALIGN = re.compile(r'text-align:\s*(left|center|right)')


def attributes_parse(text: str) -> Dict[str, str]:
    """
    Parse the inside of a directive ``{...}`` attribute block.

    ``#id`` sets id (last one wins), ``.name`` adds a class, ``key=value``
    (double, single or unquoted) sets a value, a bare ``key`` gets ``""``.
    Classes from ``.name`` shorthands and ``class=`` are merged.

    Args:
        text: Attribute block without its braces

    Returns:
        Attribute dict in first-seen order, entity references decoded

    Example:
        >>> attributes_parse('#main .a .b cols=3 title="Hi there" open')
        {'id': 'main', 'class': 'a b', 'cols': '3', 'title': 'Hi there', 'open': ''}
    """
    attributes: Dict[str, str] = {}
    classes: List[str] = []

    for match in ATTRIBUTE_TOKEN.finditer(text):
        if match.group('id') is not None:
            attributes['id'] = html.unescape(match.group('id'))
        elif match.group('cls') is not None:
            if 'class' not in attributes:
                attributes['class'] = ''
            classes.append(html.unescape(match.group('cls')))
        else:
            key = match.group('key')
            value = next(
                (v for v in (match.group('dq'), match.group('sq'), match.group('bare')) if v is not None),
                '',
            )
            value = html.unescape(value)
            if key == 'class':
                if 'class' not in attributes:
                    attributes['class'] = ''
                classes.extend(value.split())
            else:
                attributes[key] = value

    if classes:
        attributes['class'] = ' '.join(classes)
    return attributes


def directiveInfo_parse(info: str) -> Optional[DirectiveInfo]:
    """
    Split the text after a ``:::`` fence into name, label and attributes.

    Args:
        info: Opener text (e.g. ``details[Title]{open}``)

    Returns:
        DirectiveInfo, or None if the text is not a directive opener
        (a bare closing fence, an unbalanced label, or trailing garbage
        after the name)

    Example:
        >>> directiveInfo_parse('details[Step [1] setup]{open}').label
        'Step [1] setup'
    """
    text = info.strip()
    match = DIRECTIVE_NAME.match(text)
    if not match:
        return None
    rest = text[match.end():]

    label: Optional[str] = None
    if rest.startswith('['):
        end = labelEnd_find(rest)
        if end is None:
            return None
        label, rest = rest[1:end], rest[end + 1:]

    attrs = ''
    if rest:
        attrs_match = DIRECTIVE_ATTRIBUTES.fullmatch(rest)
        if not attrs_match:
            return None
        attrs = attrs_match.group('attrs')

    return DirectiveInfo(
        name=match.group(),
        label=label,
        attributes=attributes_parse(attrs),
    )


def labelEnd_find(text: str) -> Optional[int]:
    """
    Index of the ``]`` closing the label that opens ``text``.

    Nested brackets must balance; a backslash escapes the next character.
    Returns None when the label is never closed.
    """
    depth = 0
    position = 0
    while position < len(text):
        char = text[position]
        if char == '\\':
            position += 2
            continue
        if char == '[':
            depth += 1
        elif char == ']':
            depth -= 1
            if depth == 0:
                return position
        position += 1
    return None


def directiveOpener_validate(params: str, *args: Any) -> bool:
    """Container plugin validator: accept any well-formed directive opener"""
    return directiveInfo_parse(params) is not None


def tagAttributes_parse(text: str) -> Dict[str, str]:
    """Parse HTML-style attributes of a <Columns>/<Card> tag line"""
    attributes: Dict[str, str] = {}
    for match in TAG_ATTRIBUTE.finditer(text):
        key, dq, sq, bare = match.groups()
        value = next((v for v in (dq, sq, bare) if v is not None), '')
        attributes[key] = html.unescape(value)
    return attributes


def tagContainer_rule(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    """
    Block rule for ``<Columns ...>`` / ``<Card ...>`` tag containers.

    The container ends at the matching close tag of the same name, counting
    nested tags of that name, or at the end of the enclosing block when no
    close tag follows. Content in between is parsed as markdown.
    """
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False

    start = state.bMarks[startLine] + state.tShift[startLine]
    maximum = state.eMarks[startLine]
    match = TAG_OPEN.match(state.src[start:maximum])
    if not match:
        return False

    if silent:
        return True

    tag = match.group('tag')
    depth = 1
    closed = False
    nextLine = startLine

    while True:
        nextLine += 1
        if nextLine >= endLine:
            break

        line_start = state.bMarks[nextLine] + state.tShift[nextLine]
        line = state.src[line_start:state.eMarks[nextLine]]

        opening = TAG_OPEN.match(line)
        if opening and opening.group('tag') == tag:
            depth += 1
            continue

        closing = TAG_CLOSE.match(line)
        if closing and closing.group('tag') == tag:
            depth -= 1
            if depth == 0:
                closed = True
                break

    old_parent = state.parentType
    old_line_max = state.lineMax
    state.parentType = "container"
    state.lineMax = nextLine

    token = state.push("tag_container_open", "div", 1)
    token.block = True
    token.markup = f"<{tag}>"
    token.info = tag.lower()
    token.meta = {"attributes": tagAttributes_parse(match.group('attrs'))}
    token.map = [startLine, nextLine]

    state.md.block.tokenize(state, startLine + 1, nextLine)

    token = state.push("tag_container_close", "div", -1)
    token.block = True
    token.markup = f"</{tag}>"

    state.parentType = old_parent
    state.lineMax = old_line_max
    state.line = nextLine + (1 if closed else 0)
    return True


def markdownIt_create(settings: AppSettings) -> MarkdownIt:
    """
    Build the markdown-it instance used for every parse.

    Args:
        settings: Rendering settings (linkify and breaks switches)

    Returns:
        Configured MarkdownIt instance
    """
    md = MarkdownIt(
        "commonmark",
        {"html": True, "linkify": settings.linkify, "breaks": settings.breaks},
    )
    md.enable(["table", "strikethrough"])
    if settings.linkify:
        md.enable("linkify")
    front_matter_plugin(md)
    container_plugin(md, name="directive", validate=directiveOpener_validate)
    md.block.ruler.before(
        "fence",
        "tag_container",
        tagContainer_rule,
        {"alt": ["paragraph", "reference", "blockquote", "list"]},
    )
    return md


class Parser:
    """
    Parser for wikidown markdown

    Handles:
    - CommonMark blocks and inlines, GFM tables and strikethrough
    - Autolink literals (bare URLs)
    - YAML front matter (exposed as parser.front_matter)
    - Container directives, including [label] and {attributes}
    - <Columns>/<Card> tag containers
    """

    def __init__(self, source: str, settings: Optional[AppSettings] = None):
        """
        Initialize parser with source text

        Args:
            source: Markdown text, usually already preprocessed
            settings: Rendering settings, defaults to the appsettings singleton

        Attributes:
            source: Source text being parsed
            settings: Settings in effect
            md: Configured markdown-it instance
            front_matter: Parsed YAML front matter ({} if none)
        """
        self.source = source
        self.settings = settings or appsettings
        self.md = markdownIt_create(self.settings)
        self.front_matter: Dict[str, Any] = {}

    def parse(self) -> Node:
        """
        Parse the source into a document tree.

        Returns:
            Root node whose children are the top-level blocks
        """
        tokens = self.md.parse(self.source)
        syntax_tree = SyntaxTreeNode(tokens)
        root = Node("root", line_number=1)
        root.children = self.blocks_convert(syntax_tree.children)
        LOG(f"Parsed {len(root.children)} top-level blocks", level=2)
        return root

    def frontMatter_load(self, content: str) -> None:
        """Parse the YAML front matter block; invalid YAML yields {}"""
        try:
            loaded = yaml.safe_load(content)
        except yaml.YAMLError as e:
            LOG(f"Ignoring invalid front matter: {e}", level=1)
            loaded = None
        self.front_matter = loaded if isinstance(loaded, dict) else {}

    def blocks_convert(self, nodes: List[SyntaxTreeNode]) -> List[Node]:
        """Convert a list of block-level syntax tree nodes"""
        result = []
        for syntax_node in nodes:
            converted = self.block_convert(syntax_node)
            if converted is not None:
                result.append(converted)
        return result

    def block_convert(self, syntax_node: SyntaxTreeNode) -> Optional[Node]:
        """
        Convert one block-level syntax tree node.

        Args:
            syntax_node: markdown-it syntax tree node

        Returns:
            Equivalent Node, or None for tokens that produce no output
            (front matter)
        """
        kind = syntax_node.type
        line_number = syntax_node.map[0] + 1 if syntax_node.map else 0

        if kind == "paragraph":
            return Node(
                "paragraph",
                children=self.inlineContainer_convert(syntax_node),
                hidden=bool(syntax_node.hidden),
                line_number=line_number,
            )

        if kind == "heading":
            return Node(
                "heading",
                children=self.inlineContainer_convert(syntax_node),
                depth=int(syntax_node.tag[1]),
                line_number=line_number,
            )

        if kind == "blockquote":
            return Node("blockquote", children=self.blocks_convert(syntax_node.children), line_number=line_number)

        if kind in ("bullet_list", "ordered_list"):
            ordered = kind == "ordered_list"
            start = int(syntax_node.attrs.get("start", 1)) if ordered else None
            return Node(
                "list",
                children=self.blocks_convert(syntax_node.children),
                ordered=ordered,
                start=start,
                line_number=line_number,
            )

        if kind == "list_item":
            return Node("listItem", children=self.blocks_convert(syntax_node.children), line_number=line_number)

        if kind == "fence":
            info = syntax_node.info.strip()
            parts = info.split(None, 1)
            lang = parts[0] if parts else None
            meta = parts[1].strip() if len(parts) > 1 else None
            return Node(
                "code",
                value=self.codeContent_trim(syntax_node.content),
                lang=lang,
                meta=meta or None,
                line_number=line_number,
            )

        if kind == "code_block":
            return Node("code", value=self.codeContent_trim(syntax_node.content), line_number=line_number)

        if kind == "html_block":
            return Node("html", value=syntax_node.content.rstrip("\n"), line_number=line_number)

        if kind == "hr":
            return Node("thematicBreak", line_number=line_number)

        if kind == "table":
            return self.table_convert(syntax_node, line_number)

        if kind == "container_directive":
            return self.directive_convert(syntax_node, line_number)

        if kind == "tag_container":
            return Node(
                "containerDirective",
                name=syntax_node.info,
                attributes=dict(syntax_node.meta.get("attributes", {})),
                children=self.blocks_convert(syntax_node.children),
                line_number=line_number,
            )

        if kind == "front_matter":
            self.frontMatter_load(syntax_node.content)
            return None

        LOG(f"Skipping unsupported block token '{kind}' at line {line_number}", level=3)
        return None

    @staticmethod
    def codeContent_trim(content: str) -> str:
        """Remove the single newline that terminates code block content"""
        return content[:-1] if content.endswith("\n") else content

    def directive_convert(self, syntax_node: SyntaxTreeNode, line_number: int) -> Node:
        """Convert a ':::' container into a containerDirective node"""
        children = self.blocks_convert(syntax_node.children)
        info = directiveInfo_parse(syntax_node.info)
        if info is None:
            LOG(f"Malformed directive opener '{syntax_node.info}' at line {line_number}, "
                f"rendering as plain container", level=2)
            return Node("containerDirective", name="", children=children, line_number=line_number)

        if info.label is not None:
            label_paragraph = Node(
                "paragraph",
                children=self.inlineText_convert(info.label),
                label=True,
                line_number=line_number,
            )
            children.insert(0, label_paragraph)

        return Node(
            "containerDirective",
            name=info.name,
            attributes=info.attributes,
            children=children,
            line_number=line_number,
        )

    def table_convert(self, syntax_node: SyntaxTreeNode, line_number: int) -> Node:
        """Flatten thead/tbody into a list of tableRow nodes"""
        rows: List[Node] = []
        for section in syntax_node.children:
            is_header = section.type == "thead"
            for row in section.children:
                cells = []
                for cell in row.children:
                    style = str(cell.attrs.get("style", ""))
                    align_match = CELL_ALIGN.search(style)
                    cells.append(Node(
                        "tableCell",
                        children=self.inlineContainer_convert(cell),
                        header=is_header,
                        align=align_match.group(1) if align_match else None,
                    ))
                rows.append(Node("tableRow", children=cells))
        return Node("table", children=rows, line_number=line_number)

    def inlineContainer_convert(self, syntax_node: SyntaxTreeNode) -> List[Node]:
        """Convert the inline children of a paragraph/heading/cell"""
        result: List[Node] = []
        for child in syntax_node.children:
            if child.type == "inline":
                result.extend(self.inlines_convert(child.children))
        return result

    def inlineText_convert(self, text: str) -> List[Node]:
        """Parse a standalone inline snippet (directive labels)"""
        syntax_tree = SyntaxTreeNode(self.md.parseInline(text))
        result: List[Node] = []
        for child in syntax_tree.children:
            result.extend(self.inlines_convert(child.children))
        return result

    def inlines_convert(self, nodes: List[SyntaxTreeNode]) -> List[Node]:
        """
        Convert inline syntax tree nodes, merging adjacent text runs.

        Soft line breaks become break nodes when the breaks setting is on,
        newline text otherwise.
        """
        result: List[Node] = []

        def text_append(value: str) -> None:
            if result and result[-1].type == "text":
                result[-1].value = (result[-1].value or "") + value
            else:
                result.append(Node("text", value=value))

        for syntax_node in nodes:
            kind = syntax_node.type

            if kind in ("text", "text_special"):
                text_append(syntax_node.content)
            elif kind == "softbreak":
                if self.settings.breaks:
                    result.append(Node("break"))
                else:
                    text_append("\n")
            elif kind == "hardbreak":
                result.append(Node("break"))
            elif kind == "em":
                result.append(Node("emphasis", children=self.inlines_convert(syntax_node.children)))
            elif kind == "strong":
                result.append(Node("strong", children=self.inlines_convert(syntax_node.children)))
            elif kind == "s":
                result.append(Node("delete", children=self.inlines_convert(syntax_node.children)))
            elif kind == "code_inline":
                result.append(Node("inlineCode", value=syntax_node.content))
            elif kind == "link":
                title = syntax_node.attrs.get("title")
                result.append(Node(
                    "link",
                    url=str(syntax_node.attrs.get("href", "")),
                    title=str(title) if title is not None else None,
                    children=self.inlines_convert(syntax_node.children),
                ))
            elif kind == "image":
                title = syntax_node.attrs.get("title")
                result.append(Node(
                    "image",
                    url=str(syntax_node.attrs.get("src", "")),
                    alt=syntax_node.content,
                    title=str(title) if title is not None else None,
                ))
            elif kind == "html_inline":
                result.append(Node("html", value=syntax_node.content))
            else:
                LOG(f"Skipping unsupported inline token '{kind}'", level=3)

        return result
