"""
Directive implementations for wikidown

Each directive handler receives a DirectiveContext for one
``containerDirective`` node and claims it with a render hint (element name
plus properties), possibly restructuring or clearing its children. Handlers
never produce HTML themselves; the Compiler renders the hinted nodes.
"""

import html
import json
import re
from typing import Dict, List, Optional, Tuple

from ..config.settings import AppSettings, appsettings
from ..models.directives import DirectiveSpec, DirectiveCategory, DirectiveContext, VisitAction
from ..models.document import CardData, CodeTab
from .parser import Node
from .log import LOG


LANGUAGE_LABELS: Dict[str, str] = {
    'javascript': 'JavaScript',
    'js': 'JavaScript',
    'typescript': 'TypeScript',
    'ts': 'TypeScript',
    'jsx': 'JSX',
    'tsx': 'TSX',
    'vue': 'Vue',
    'vuejs': 'Vue.js',
    'react': 'React',
    'svelte': 'Svelte',
    'php': 'PHP',
    'python': 'Python',
    'py': 'Python',
    'ruby': 'Ruby',
    'rb': 'Ruby',
    'go': 'Go',
    'rust': 'Rust',
    'java': 'Java',
    'csharp': 'C#',
    'cpp': 'C++',
    'c': 'C',
    'swift': 'Swift',
    'kotlin': 'Kotlin',
    'bash': 'Bash',
    'sh': 'Shell',
    'shell': 'Shell',
    'sql': 'SQL',
    'html': 'HTML',
    'css': 'CSS',
    'scss': 'SCSS',
    'sass': 'Sass',
    'less': 'Less',
    'json': 'JSON',
    'yaml': 'YAML',
    'yml': 'YAML',
    'xml': 'XML',
    'markdown': 'Markdown',
    'md': 'Markdown',
    'text': 'Text',
}

META_LABEL = re.compile(r'^:(.+)$')
LANG_LABEL = re.compile(r'^([^:]+):(.+)$')
LEADING_INTEGER = re.compile(r'^\s*([+-]?\d+)')

COLUMNS_MIN = 1
COLUMNS_MAX = 4
COLUMNS_DEFAULT = 2


def text_collect(nodes: List[Node]) -> str:
    """
    Flatten text and paragraph nodes into newline separated text.

    Text nodes contribute their value, paragraphs the joined text of their
    own children; every other kind contributes an empty entry.

    Example:
        Paragraphs "A: 1" and "B: 2" collect to "A: 1\\nB: 2".
    """
    parts = []
    for node in nodes:
        if node.type == 'text':
            parts.append(node.value or '')
        elif node.type == 'paragraph':
            parts.append(text_collect(node.children))
        else:
            parts.append('')
    return '\n'.join(parts).strip()


def languageLabel_format(lang: str) -> str:
    """Display label for a code language, e.g. 'js' -> 'JavaScript'"""
    label = LANGUAGE_LABELS.get(lang.lower())
    if label:
        return label
    return lang[:1].upper() + lang[1:]


def codeMeta_parse(lang: str, meta: str) -> Tuple[str, str]:
    """
    Work out the language and tab label of a code block.

    Rules, first match wins:
        1. meta ``:Label``        -> (lang, "Label")
        2. lang ``lang:Label``    -> ("lang", "Label")
        3. otherwise              -> (lang, formatted language name)

    Example:
        >>> codeMeta_parse('py:Python3', '')
        ('py', 'Python3')
        >>> codeMeta_parse('bash', ':Custom Label')
        ('bash', 'Custom Label')
        >>> codeMeta_parse('js', '')
        ('js', 'JavaScript')
    """
    label_match = META_LABEL.match(meta)
    if label_match:
        return lang, label_match.group(1).strip()

    lang_label_match = LANG_LABEL.match(lang)
    if lang_label_match:
        return lang_label_match.group(1).strip(), lang_label_match.group(2).strip()

    return lang, languageLabel_format(lang)


def cols_parse(value: Optional[str]) -> Optional[int]:
    """
    Parse a columns count the lenient way (leading integer, rest ignored).

    Missing or empty values give the default of 2; text without a leading
    integer gives None.
    """
    if not value:
        return COLUMNS_DEFAULT
    match = LEADING_INTEGER.match(value)
    return int(match.group(1)) if match else None


def card_extract(card: Node) -> CardData:
    """Collect title/href/icon attributes and flattened body text of a card"""
    return CardData(
        title=card.attributes.get('title'),
        href=card.attributes.get('href'),
        icon=card.attributes.get('icon'),
        content=text_collect(card.children),
    )


class DirectiveRegistry:
    """
    Registry of directive specifications and handlers

    Maps directive names to DirectiveSpec objects. Lookup tries the exact
    name (and aliases) first, then wildcard prefix patterns such as
    ``chart-*``.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize the directive registry and register all built-in directives"""
        self.settings = settings or appsettings
        self.specs: Dict[str, DirectiveSpec] = {}
        self.calloutDirectives_register()
        self.referenceDirectives_register()
        self.chartDirectives_register()
        self.codeDirectives_register()
        self.layoutDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a directive specification"""
        self.specs[spec.name] = spec
        for alias in spec.aliases:
            self.specs[alias] = spec

    def spec_get(self, name: str) -> Optional[DirectiveSpec]:
        """
        Get full directive specification by name

        Args:
            name: Directive name to look up

        Returns:
            Matching spec or None if the directive is unknown
        """
        if name in self.specs:
            return self.specs[name]

        for spec in self.specs.values():
            if spec.is_wildcard and spec.matches(name):
                return spec

        return None

    def directives_listByCategory(self, category: DirectiveCategory) -> List[DirectiveSpec]:
        """Get all directives in a category"""
        seen = []
        for spec in self.specs.values():
            if spec.category == category and spec not in seen:
                seen.append(spec)
        return seen

    def calloutDirectives_register(self) -> None:
        """Register :::message and :::details"""

        def message_handler(ctx: DirectiveContext) -> None:
            """Handle :::message - aside box, alert variant via class or flag"""
            node = ctx.node
            class_name = node.attributes.get('className') or node.attributes.get('class') or ''
            is_alert = 'alert' in class_name or 'alert' in node.attributes
            node.claim('message', 'aside', {'className': f"msg {'alert' if is_alert else 'message'}"})

            # Code blocks directly inside a callout render inside a <pre> wrapper
            wrapped = []
            for child in node.children:
                if child.type == 'code':
                    wrapper = Node('paragraph', children=[child], line_number=child.line_number)
                    wrapper.claim('message', 'pre')
                    wrapped.append(wrapper)
                else:
                    wrapped.append(child)
            node.children = wrapped

        def details_handler(ctx: DirectiveContext) -> None:
            """Handle :::details - collapsible block with a <summary>"""
            node = ctx.node
            summary = self.settings.details_summary_default
            remaining = list(node.children)

            if remaining and remaining[0].type == 'paragraph':
                first_paragraph = remaining.pop(0)
                if first_paragraph.children and first_paragraph.children[0].type == 'text':
                    summary = first_paragraph.children[0].value or summary

            content = Node('paragraph', children=remaining, line_number=node.line_number)
            content.claim('details', 'div', {'className': 'details-content'})

            node.claim('details', 'details', {})
            node.children = [
                Node('html', value=f'<summary>{html.escape(summary)}</summary>', trusted=True),
                content,
            ]

        self.register(DirectiveSpec(
            name='message',
            category=DirectiveCategory.CALLOUT,
            description='Message box; alert variant with {.alert}',
            handler=message_handler,
            examples=[':::message\nNote\n:::', ':::message{.alert}\nWarning\n:::'],
        ))

        self.register(DirectiveSpec(
            name='details',
            category=DirectiveCategory.CALLOUT,
            description='Collapsible block, first paragraph or [label] is the summary',
            handler=details_handler,
            examples=[':::details[More]\nHidden text\n:::'],
        ))

    def referenceDirectives_register(self) -> None:
        """Register :::param-field"""

        def param_field_handler(ctx: DirectiveContext) -> None:
            """Handle :::param-field - API parameter description"""
            node = ctx.node
            node.claim('param-field', 'div', {
                'data-param-field': 'true',
                'data-param-header': node.attributes.get('header'),
                'data-param-body': node.attributes.get('body'),
                'data-param-type': node.attributes.get('type'),
            })

        self.register(DirectiveSpec(
            name='param-field',
            category=DirectiveCategory.REFERENCE,
            description='API parameter field (header/body/type)',
            handler=param_field_handler,
            examples=[':::param-field{header="X-Token" type="string"}\nAuth token\n:::'],
        ))

    def chartDirectives_register(self) -> None:
        """Register the :::chart-* family"""

        def chart_handler(ctx: DirectiveContext) -> None:
            """Handle :::chart-<kind> - keep the raw payload for the renderer"""
            node = ctx.node
            spec = self.spec_get(node.name or '')
            chart_type = spec.suffix_get(node.name or '') if spec else ''
            node.claim('chart', 'div', {
                'data-chart-type': chart_type,
                'data-chart-data': text_collect(node.children),
                'data-chart-title': node.attributes.get('title'),
                'data-chart-height': node.attributes.get('height'),
                'data-chart-width': node.attributes.get('width'),
            })
            node.children_clear()

        self.register(DirectiveSpec(
            name='chart-*',
            category=DirectiveCategory.CHART,
            description='Chart from "name: value" lines; suffix is the chart kind',
            handler=chart_handler,
            is_wildcard=True,
            examples=[':::chart-radar{title="Skills"}\nJavaScript: 90\nPython: 75\n:::'],
        ))

    def codeDirectives_register(self) -> None:
        """Register :::code-tabs"""

        def code_tabs_handler(ctx: DirectiveContext) -> None:
            """Handle :::code-tabs - tabbed code blocks"""
            node = ctx.node
            tabs: List[CodeTab] = []

            for child in node.children:
                if child.type != 'code':
                    continue
                meta = child.meta or ''
                language, label = codeMeta_parse(child.lang or 'text', meta)
                tabs.append(CodeTab(language=language, label=label, code=child.value or '', meta=meta or None))

            if not tabs:
                node.claim('code-tabs', 'div', {'data-code-tabs-error': 'no code block found in code-tabs'})
            else:
                node.claim('code-tabs', 'div', {
                    'data-code-tabs': json.dumps([tab.toDict() for tab in tabs], ensure_ascii=False),
                })
            node.children_clear()

        self.register(DirectiveSpec(
            name='code-tabs',
            category=DirectiveCategory.CODE,
            description='Tabbed code blocks, one tab per fenced code block',
            handler=code_tabs_handler,
            examples=[':::code-tabs\n```js\nlet a\n```\n```py:Python3\na = 1\n```\n:::'],
        ))

    def layoutDirectives_register(self) -> None:
        """Register :::columns, :::card, :::tabs and :::tab"""

        def error_set(node: Node, owner: str, message: str) -> None:
            node.claim(owner, 'div', {'data-columns-error': message})
            node.children_clear()

        def card_handler(ctx: DirectiveContext) -> None:
            """Handle :::card - only valid inside (or right after) :::columns"""
            if any(ancestor.is_directive('columns') for ancestor in ctx.ancestors):
                return
            previous = ctx.previousSibling_get()
            if previous is not None and previous.is_directive('columns'):
                return
            LOG(f"Orphan card at line {ctx.node.line_number}", level=2)
            error_set(ctx.node, 'card', 'card must be used inside columns')

        def columns_handler(ctx: DirectiveContext) -> Optional[VisitAction]:
            """Handle :::columns - collect cards into a JSON grid description"""
            node = ctx.node
            cols_value = node.attributes.get('cols')
            cols = cols_parse(cols_value)

            if cols is None or not COLUMNS_MIN <= cols <= COLUMNS_MAX:
                error_set(node, 'columns', f'invalid cols value: {cols_value} (must be 1-4)')
                return None

            cards = [card_extract(child) for child in node.children if child.is_directive('card')]

            # Cards the parser left as following siblings (equal-length fences)
            siblings = ctx.parent.children
            recovered = 0
            while ctx.index + 1 + recovered < len(siblings):
                sibling = siblings[ctx.index + 1 + recovered]
                if not sibling.is_directive('card'):
                    break
                cards.append(card_extract(sibling))
                recovered += 1
            if recovered:
                LOG(f"Recovered {recovered} sibling card(s) after columns at line {node.line_number}", level=2)
                del siblings[ctx.index + 1:ctx.index + 1 + recovered]

            if not cards:
                error_set(node, 'columns', 'no card found in columns')
                return None

            node.claim('columns', 'div', {
                'data-columns-config': json.dumps({'cols': cols}),
                'data-columns-cards': json.dumps([card.toDict() for card in cards], ensure_ascii=False),
            })
            node.children_clear()
            return VisitAction.SKIP

        def tabs_handler(ctx: DirectiveContext) -> None:
            """Handle :::tabs - tab group container"""
            node = ctx.node
            node.claim('tabs', 'tabs', {
                'data-tabs-sync': node.attributes.get('sync'),
                'data-tabs-border-bottom': node.attributes.get('borderBottom'),
            })

        def tab_handler(ctx: DirectiveContext) -> None:
            """Handle :::tab - one tab panel"""
            node = ctx.node
            node.claim('tabs', 'tab', {
                'data-tab-title': node.attributes.get('title'),
                'data-tab-icon': node.attributes.get('icon'),
            })

        self.register(DirectiveSpec(
            name='columns',
            category=DirectiveCategory.LAYOUT,
            description='Card grid with 1-4 columns',
            handler=columns_handler,
            examples=[':::columns{cols=2}\n:::card{title="A"}\nBody\n:::\n:::'],
        ))

        self.register(DirectiveSpec(
            name='card',
            category=DirectiveCategory.LAYOUT,
            description='Card inside a :::columns grid',
            handler=card_handler,
        ))

        self.register(DirectiveSpec(
            name='tabs',
            category=DirectiveCategory.LAYOUT,
            description='Tab group (sync, borderBottom)',
            handler=tabs_handler,
        ))

        self.register(DirectiveSpec(
            name='tab',
            category=DirectiveCategory.LAYOUT,
            description='Single tab (title, icon)',
            handler=tab_handler,
        ))
