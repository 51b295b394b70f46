"""
Compiler for wikidown document trees to HTML

Renders the transformed Node tree to an HTML fragment. Nodes without a
render hint use their default element; nodes with a hint render as the
hinted element with the hint's properties merged in.

Escaping rules:
- every text value and every attribute value is HTML-escaped
- raw HTML from the source is escaped unless allow_raw_html is set
- HTML synthesized by the pipeline itself (trusted nodes) is emitted as is
"""

import html
import json
import re
from typing import Any, Dict, List, Optional

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from ..config.settings import AppSettings, appsettings
from .charts import ChartDataError, chartData_parse, chartSize_parse
from .lexer import WikidownLexer, get_lexer
from .parser import Node
from .urls import youtubeParameters_extract
from .log import LOG


DEFAULT_TAGS: Dict[str, str] = {
    'paragraph': 'p',
    'blockquote': 'blockquote',
    'listItem': 'li',
    'emphasis': 'em',
    'strong': 'strong',
    'delete': 'del',
    'containerDirective': 'div',
}

BLOCK_TYPES = {
    'paragraph', 'heading', 'blockquote', 'list', 'listItem', 'code',
    'thematicBreak', 'table', 'tableRow', 'containerDirective', 'embed',
}

PROPERTY_NAMES: Dict[str, str] = {
    'className': 'class',
    'htmlFor': 'for',
}

CHART_DEFAULT_HEIGHT = 400

SLUG_STRIP = re.compile(r'[^\w\- ]')


class Slugger:
    """
    GitHub-style heading slugs, unique within one document.

    Example:
        >>> slugger = Slugger()
        >>> slugger.slug('Hello World!'), slugger.slug('Hello World')
        ('hello-world', 'hello-world-1')
    """

    def __init__(self) -> None:
        self.occurrences: Dict[str, int] = {}

    def reset(self) -> None:
        self.occurrences = {}

    def slug(self, text: str) -> str:
        base = SLUG_STRIP.sub('', text.strip().lower()).replace(' ', '-')
        candidate = base
        while candidate in self.occurrences:
            self.occurrences[base] += 1
            candidate = f"{base}-{self.occurrences[base]}"
        self.occurrences[candidate] = 0
        return candidate


def attributes_render(properties: Dict[str, Any]) -> str:
    """
    Serialize an attribute map.

    None values are omitted, React-style names are mapped to HTML names and
    every value is escaped.

    Returns:
        Attribute string with a leading space per attribute, '' when empty
    """
    parts = []
    for key, value in properties.items():
        if value is None:
            continue
        name = PROPERTY_NAMES.get(key, key)
        parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
    return ''.join(parts)


def plainText_get(node: Node) -> str:
    """Concatenated text of a node's text, inlineCode and image-alt descendants"""
    if node.type in ('text', 'inlineCode'):
        return node.value or ''
    if node.type == 'image':
        return node.alt or ''
    return ''.join(plainText_get(child) for child in node.children)


class Compiler:
    """
    Compiles a transformed document tree to an HTML fragment

    Responsibilities:
    - Default element mapping for every node kind
    - Render hints (element override plus properties)
    - Heading ids for the table of contents
    - Syntax highlighting of code blocks
    - Chart payload parsing, isolated per chart
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """
        Initialize compiler

        Args:
            settings: Rendering settings, defaults to the appsettings singleton
        """
        self.settings = settings or appsettings
        self.slugger = Slugger()
        self.formatter = self.formatter_create()

    def formatter_create(self) -> HtmlFormatter:
        """Inline-styled Pygments formatter, falling back to the default style"""
        try:
            return HtmlFormatter(nowrap=True, noclasses=True, style=self.settings.pygments_style)
        except ClassNotFound:
            LOG(f"Unknown Pygments style '{self.settings.pygments_style}', using default", level=1)
            return HtmlFormatter(nowrap=True, noclasses=True, style='default')

    def compile(self, root: Node) -> str:
        """
        Compile a document tree to HTML

        Args:
            root: Transformed document root

        Returns:
            HTML fragment
        """
        LOG("Starting compilation...", level=2)
        self.slugger.reset()
        output = self.children_compile(root)
        LOG(f"Compiled {len(output)} characters of HTML", level=2)
        return output

    def children_compile(self, node: Node) -> str:
        """Compile a node's children, newline separated when they are blocks"""
        parts = [self.node_compile(child, node) for child in node.children]
        if any(child.type in BLOCK_TYPES for child in node.children):
            return '\n'.join(part for part in parts if part)
        return ''.join(parts)

    def element_render(self, tag: str, properties: Dict[str, Any], inner: str, block: bool = False) -> str:
        """Wrap inner HTML in an element; block content gets its own lines"""
        attrs = attributes_render(properties)
        if block and inner:
            inner = f'\n{inner}\n'
        return f'<{tag}{attrs}>{inner}</{tag}>'

    def node_compile(self, node: Node, parent: Optional[Node] = None) -> str:
        """
        Compile one node (and its subtree) to HTML

        Args:
            node: Node to compile
            parent: Its parent, needed where rendering depends on context

        Returns:
            HTML string
        """
        kind = node.type

        if kind == 'text':
            return html.escape(node.value or '', quote=False)

        if kind == 'inlineCode':
            return f'<code>{html.escape(node.value or "", quote=False)}</code>'

        if kind == 'break':
            return '<br>\n'

        if kind == 'thematicBreak':
            return '<hr>'

        if kind == 'html':
            if node.trusted or self.settings.allow_raw_html:
                return node.value or ''
            return html.escape(node.value or '', quote=False)

        if kind == 'code':
            return self.code_compile(node, parent)

        if kind == 'heading':
            return self.heading_compile(node)

        if kind == 'list':
            return self.list_compile(node)

        if kind == 'link':
            properties = {'href': node.url, 'title': node.title, **node.properties}
            return self.element_render('a', properties, self.children_compile(node))

        if kind == 'image':
            properties = {'src': node.url, 'alt': node.alt or '', 'title': node.title, **node.properties}
            return f'<img{attributes_render(properties)}>'

        if kind == 'embed':
            return self.embed_compile(node)

        if kind == 'table':
            return self.table_compile(node)

        if kind == 'paragraph' and node.hint is None and node.hidden:
            # Tight list items render their text without <p>
            return self.children_compile(node)

        if node.hint is not None:
            properties = {**node.hint.properties, **node.properties}
            if node.hint.owner == 'chart':
                properties = self.chartProperties_resolve(properties)
            inner = self.children_compile(node)
            block = node.hint.tag != 'pre' and self.blockChildren_has(node)
            return self.element_render(node.hint.tag, properties, inner, block=block)

        if kind in DEFAULT_TAGS:
            inner = self.children_compile(node)
            return self.element_render(DEFAULT_TAGS[kind], dict(node.properties), inner, block=self.blockChildren_has(node))

        LOG(f"No renderer for node type '{kind}', rendering children only", level=2)
        return self.children_compile(node)

    @staticmethod
    def blockChildren_has(node: Node) -> bool:
        return any(child.type in BLOCK_TYPES and not child.hidden for child in node.children)

    def lexer_get(self, lang: str) -> Optional[Lexer]:
        """Pygments lexer for a fence language, None when unknown"""
        if lang.lower() in WikidownLexer.aliases:
            return get_lexer()
        try:
            return get_lexer_by_name(lang)
        except ClassNotFound:
            return None

    def code_highlight(self, code: str, lang: Optional[str]) -> str:
        """
        Highlight code with inline styles, or escape it when highlighting is
        off or the language is unknown.

        Returns:
            HTML for the inside of <code>, ending in a newline
        """
        lexer = self.lexer_get(lang) if (lang and self.settings.highlight_code) else None
        if lexer is None:
            body = html.escape(code, quote=False)
        else:
            body = highlight(code, lexer, self.formatter)
        return body if body.endswith('\n') else body + '\n'

    def code_compile(self, node: Node, parent: Optional[Node]) -> str:
        """
        Compile a fenced/indented code block

        Renders <pre><code class="language-x">; when the parent is already
        hinted as <pre> (code inside callouts) only the <code> is emitted.
        """
        properties: Dict[str, Any] = {'className': f'language-{node.lang}' if node.lang else None}
        properties.update(node.properties)
        code_html = f'<code{attributes_render(properties)}>{self.code_highlight(node.value or "", node.lang)}</code>'

        if parent is not None and parent.hint is not None and parent.hint.tag == 'pre':
            return code_html
        return f'<pre>{code_html}</pre>'

    def heading_compile(self, node: Node) -> str:
        """Compile a heading with a unique slug id"""
        slug = self.slugger.slug(plainText_get(node))
        properties = {'id': slug, **node.properties}
        return self.element_render(f'h{node.depth}', properties, self.children_compile(node))

    def list_compile(self, node: Node) -> str:
        """Compile ordered/bullet lists"""
        tag = 'ol' if node.ordered else 'ul'
        properties: Dict[str, Any] = dict(node.properties)
        if node.ordered and node.start is not None and node.start != 1:
            properties = {'start': node.start, **properties}
        return self.element_render(tag, properties, self.children_compile(node), block=True)

    def table_compile(self, node: Node) -> str:
        """Compile a table, header rows into <thead>, the rest into <tbody>"""
        head_rows: List[str] = []
        body_rows: List[str] = []
        for row in node.children:
            cells = []
            for cell in row.children:
                tag = 'th' if cell.header else 'td'
                properties = {'style': f'text-align:{cell.align}' if cell.align else None}
                cells.append(self.element_render(tag, properties, self.children_compile(cell)))
            row_html = self.element_render('tr', {}, '\n'.join(cells), block=True)
            (head_rows if row.children and row.children[0].header else body_rows).append(row_html)

        sections = []
        if head_rows:
            sections.append(self.element_render('thead', {}, '\n'.join(head_rows), block=True))
        if body_rows:
            sections.append(self.element_render('tbody', {}, '\n'.join(body_rows), block=True))
        return self.element_render('table', dict(node.properties), '\n'.join(sections), block=True)

    def embed_compile(self, node: Node) -> str:
        """Compile an embed placeholder for the external embed resolver"""
        kind = node.attributes.get('kind')
        properties: Dict[str, Any] = {'data-embed-type': kind, 'data-embed-url': node.url}
        if kind == 'youtube':
            parameters = youtubeParameters_extract(node.url or '')
            if parameters:
                properties['data-youtube-video-id'] = parameters['videoId']
                properties['data-youtube-start'] = parameters['start']
        return self.element_render('div', properties, '')

    def chartProperties_resolve(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse a chart payload into data points.

        A malformed payload only affects its own chart: the element gets a
        data-chart-error attribute and rendering continues.
        """
        resolved = dict(properties)
        try:
            points = chartData_parse(str(properties.get('data-chart-data') or ''))
        except ChartDataError as e:
            LOG(f"Chart '{properties.get('data-chart-type')}' not rendered: {e}", level=1)
            resolved['data-chart-error'] = str(e)
            return resolved

        resolved['data-chart-points'] = json.dumps([point.toDict() for point in points], ensure_ascii=False)

        height = chartSize_parse(properties.get('data-chart-height'), CHART_DEFAULT_HEIGHT)
        style = f"height:{height}px" if isinstance(height, int) else f"height:{height}"
        width = properties.get('data-chart-width')
        if width:
            parsed_width = chartSize_parse(width, CHART_DEFAULT_HEIGHT)
            style += f";width:{parsed_width}px" if isinstance(parsed_width, int) else f";width:{parsed_width}"
        resolved['style'] = style
        return resolved
