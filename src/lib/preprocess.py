"""
Text preprocessors

Rewrite authoring shorthands into syntax the markdown parser understands,
before any parsing happens. Every function here is pure and total: it takes
a string, returns a string, and never raises.

Chain order (source_preprocess):
    1. zennSyntax_normalize     :::message alert / :::details Title
    2. imageSize_normalize      ![alt](url =WxH)
    3. paramField_normalize     <ParamField ...>body</ParamField>
    4. columnsSyntax_normalize  :::columns / :::card -> <Columns> / <Card>

Line-based rewrites leave fenced code blocks alone, so documentation that
shows the shorthand inside ``` fences renders it verbatim.

Example:
    >>> source_preprocess(":::message alert\\nCareful\\n:::")
    ':::message{.alert}\\nCareful\\n:::'
"""

import re
from typing import Callable, List, Optional, Tuple


FENCE_OPEN = re.compile(r'^[ ]{0,3}(`{3,}|~{3,})')

ZENN_MESSAGE_ALERT = re.compile(r'^([ \t]*:{3,})message[ \t]+alert\b')
ZENN_DETAILS_TITLE = re.compile(r'^([ \t]*:{3,})details[ \t]+(.+?)[ \t]*$')

IMAGE_SIZE = re.compile(r'!\[([^\]]*)\]\(([^\s)]+)[ \t]+=(\d+)(?:x(\d*))?\)')

PARAM_FIELD = re.compile(r'<ParamField\s+([^>]+)>([\s\S]*?)</ParamField>', re.IGNORECASE)
PARAM_FIELD_ATTRIBUTE = re.compile(r'(\w+)="([^"]*)"')

COLUMNS_OPEN = re.compile(r'^(\s*):::columns\b(.*)$')
CARD_OPEN = re.compile(r'^(\s*):::card\b(.*)$')
BARE_CLOSE = re.compile(r'^(\s*):::\s*$')
BRACE_ATTRIBUTE = re.compile(r'''(\w+)=(".*?"|'.*?'|\S+)''')


def blocks_split(lines: List[str]) -> List[Tuple[bool, List[str]]]:
    """
    Group lines into alternating prose and fenced-code runs.

    Args:
        lines: Source lines without their newline characters

    Returns:
        List of (is_code, lines) tuples in source order. Fence delimiter
        lines belong to the code run. An unterminated fence runs to the
        end of the input, matching CommonMark.
    """
    blocks: List[Tuple[bool, List[str]]] = []
    current: List[str] = []
    fence: Optional[str] = None

    for line in lines:
        if fence is None:
            match = FENCE_OPEN.match(line)
            if match:
                if current:
                    blocks.append((False, current))
                current = [line]
                fence = match.group(1)
                continue
            current.append(line)
        else:
            current.append(line)
            stripped = line.strip()
            if (stripped.startswith(fence)
                    and set(stripped) == {fence[0]}
                    and len(line) - len(line.lstrip(' ')) <= 3):
                blocks.append((True, current))
                current = []
                fence = None

    if current:
        blocks.append((fence is not None, current))
    return blocks


def prose_map(markdown: str, transform: Callable[[str], str]) -> str:
    """
    Apply a text transform to everything outside fenced code blocks.

    Args:
        markdown: Source text
        transform: Function applied to each prose run (joined with '\\n')

    Returns:
        Source with prose runs transformed and code runs untouched
    """
    if not markdown:
        return markdown
    parts = []
    for is_code, lines in blocks_split(markdown.split('\n')):
        chunk = '\n'.join(lines)
        parts.append(chunk if is_code else transform(chunk))
    return '\n'.join(parts)


def codeRanges_find(markdown: str) -> List[Tuple[int, int]]:
    """
    Character ranges ``[start, end)`` of the fenced code runs in a text.

    Offsets follow the runs of blocks_split, fence lines included.
    """
    ranges: List[Tuple[int, int]] = []
    offset = 0
    for is_code, lines in blocks_split(markdown.split('\n')):
        length = sum(len(line) + 1 for line in lines)
        if is_code:
            ranges.append((offset, offset + length))
        offset += length
    return ranges


def zennSyntax_normalize(markdown: str) -> str:
    """
    Rewrite Zenn-style directive openers into generic directive syntax.

    ``:::message alert`` becomes ``:::message{.alert}`` and
    ``:::details Some title`` becomes ``:::details[Some title]``. Only
    directive-opening lines are touched; a trailing carriage return is
    preserved.

    Args:
        markdown: Source text

    Returns:
        Normalized source text
    """
    def line_rewrite(chunk: str) -> str:
        out = []
        for line in chunk.split('\n'):
            eol = ''
            if line.endswith('\r'):
                line, eol = line[:-1], '\r'
            line = ZENN_MESSAGE_ALERT.sub(r'\1message{.alert}', line, count=1)
            line = ZENN_DETAILS_TITLE.sub(r'\1details[\2]', line, count=1)
            out.append(line + eol)
        return '\n'.join(out)

    return prose_map(markdown, line_rewrite)


def imageSize_normalize(markdown: str) -> str:
    """
    Turn ``![alt](url =WxH)`` size suffixes into reserved query parameters.

    The height (and the ``x`` separator) are optional. The parameters are
    picked up again by the image size transform after parsing.

    Example:
        >>> imageSize_normalize('![a](/p.png =100x50)')
        '![a](/p.png?__width__=100&__height__=50)'
        >>> imageSize_normalize('![a](/p.png?v=2 =100x)')
        '![a](/p.png?v=2&__width__=100)'
    """
    def size_rewrite(match: re.Match) -> str:
        alt, url, width, height = match.groups()
        params = f'__width__={width}'
        if height:
            params += f'&__height__={height}'
        separator = '&' if '?' in url else '?'
        return f'![{alt}]({url}{separator}{params})'

    return prose_map(markdown, lambda chunk: IMAGE_SIZE.sub(size_rewrite, chunk))


def paramField_normalize(markdown: str) -> str:
    """
    Rewrite ``<ParamField ...>body</ParamField>`` blocks into directives.

    Only double-quoted attributes are recognised; all of them are kept in
    source order. The body is trimmed and may hold fenced code; a
    ``<ParamField>`` that itself starts inside fenced code is left alone.

    Example:
        <ParamField header="X-Token" type="string">
          Auth token
        </ParamField>

        becomes

        :::param-field{header="X-Token" type="string"}
        Auth token
        :::
    """
    def field_rewrite(match: re.Match) -> str:
        attributes = PARAM_FIELD_ATTRIBUTE.findall(match.group(1))
        attr_string = ' '.join(f'{key}="{value}"' for key, value in attributes)
        body = match.group(2).strip()
        return f':::param-field{{{attr_string}}}\n{body}\n:::'

    code_ranges = codeRanges_find(markdown)
    parts: List[str] = []
    position = 0
    while True:
        match = PARAM_FIELD.search(markdown, position)
        if match is None:
            break
        code_end = next((end for start, end in code_ranges if start <= match.start() < end), None)
        if code_end is not None:
            parts.append(markdown[position:code_end])
            position = code_end
            continue
        parts.append(markdown[position:match.start()])
        parts.append(field_rewrite(match))
        position = match.end()
    parts.append(markdown[position:])
    return ''.join(parts)


def braceAttributes_toTag(trailing: str) -> str:
    """
    Convert a ``{k=v ...}`` suffix into an HTML attribute string.

    Args:
        trailing: Text after the directive name (e.g. ``{cols=3}``)

    Returns:
        Attribute string with a leading space, or '' when there is nothing
        to convert. Values are re-quoted with double quotes; ``&`` and ``"``
        are escaped.
    """
    trimmed = trailing.strip()
    if not (trimmed.startswith('{') and trimmed.endswith('}')):
        return ''

    inner = trimmed[1:-1].strip()
    if not inner:
        return ''

    attributes = []
    for key, value in BRACE_ATTRIBUTE.findall(inner):
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        value = value.replace('&', '&amp;').replace('"', '&quot;')
        attributes.append(f'{key}="{value}"')

    return ' ' + ' '.join(attributes) if attributes else ''


def columnsSyntax_normalize(markdown: str) -> str:
    """
    Rewrite ``:::columns`` / ``:::card`` fences into ``<Columns>`` / ``<Card>`` tags.

    Colon fences of equal length cannot nest, so a card inside columns
    would close its parent early. Tags nest by name instead. State is two
    booleans: a bare ``:::`` inside columns closes the open card first,
    then the columns. Line endings are normalized to ``\\n``.

    Example:
        :::columns{cols=2}        <Columns cols="2">
        :::card{title="A"}        <Card title="A">
        Body                 ->   Body
        :::                       </Card>
        :::                       </Columns>
    """
    if not markdown:
        return markdown

    output: List[str] = []
    in_columns = False
    in_card = False

    for is_code, lines in blocks_split(re.split(r'\r?\n', markdown)):
        if is_code:
            output.extend(lines)
            continue

        for line in lines:
            columns_match = COLUMNS_OPEN.match(line)
            if not in_columns and columns_match:
                attrs = braceAttributes_toTag(columns_match.group(2))
                output.append(f'{columns_match.group(1)}<Columns{attrs}>')
                in_columns = True
                continue

            if in_columns:
                card_match = CARD_OPEN.match(line)
                if not in_card and card_match:
                    attrs = braceAttributes_toTag(card_match.group(2))
                    output.append(f'{card_match.group(1)}<Card{attrs}>')
                    in_card = True
                    continue

                closing_match = BARE_CLOSE.match(line)
                if closing_match:
                    if in_card:
                        output.append(f'{closing_match.group(1)}</Card>')
                        in_card = False
                    else:
                        output.append(f'{closing_match.group(1)}</Columns>')
                        in_columns = False
                    continue

            output.append(line)

    return '\n'.join(output)


PREPROCESSORS: List[Callable[[str], str]] = [
    zennSyntax_normalize,
    imageSize_normalize,
    paramField_normalize,
    columnsSyntax_normalize,
]


def source_preprocess(markdown: str) -> str:
    """
    Run the full preprocessor chain in its fixed order.

    Args:
        markdown: Raw markdown source

    Returns:
        Source ready for the markdown parser
    """
    for preprocessor in PREPROCESSORS:
        markdown = preprocessor(markdown)
    return markdown
