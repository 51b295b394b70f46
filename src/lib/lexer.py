"""
Custom Pygments lexer for wikidown markdown

Highlights the directive layer on top of plain markdown when wikidown
source itself is shown in a code block (```wikidown fences), e.g. in
authoring help pages.

Token types:
- Punctuation: colon fences, brackets and braces
- Name.Tag: directive names (:::message, :::chart-radar)
- Keyword.Declaration: layout directives (columns, card, tabs, tab)
- Name.Builtin: <Columns>, <Card>, <ParamField> tags
- Name.Attribute / Literal.String: attribute keys and values
- Generic.Heading: markdown headings
- String.Backtick: code fences
"""

from pygments.lexer import RegexLexer, bygroups
from pygments.token import (
    Text,
    Punctuation,
    Name,
    String,
    Keyword,
    Literal,
    Comment,
    Generic,
    Number,
)


class WikidownLexer(RegexLexer):
    """
    Lexer for wikidown markdown

    Example:
        :::columns{cols=2}
        :::card{title="Intro"}
        Hello
        :::
        :::

    Tokens:
        ::: → Punctuation
        columns → Keyword.Declaration
        { → Punctuation
        cols → Name.Attribute
        2 → Literal.String
    """

    name = 'Wikidown'
    aliases = ['wikidown', 'wd']
    filenames = ['*.wd.md']

    tokens = {
        'root': [
            # HTML comments
            (r'<!--.*?-->', Comment),

            # Code fences (content passes through as text)
            (r'^[ ]{0,3}(```|~~~).*\n', String.Backtick),

            # Closing directive fence
            (r'^([ \t]*)(:{3,})([ \t]*)$', bygroups(Text, Punctuation, Text)),

            # Layout directives
            (r'^([ \t]*)(:{3,})((columns|card|tabs|tab)\b)',
             bygroups(Text, Punctuation, Keyword.Declaration, None), 'directive'),

            # Chart directives (chart-radar, chart-bar, ...)
            (r'^([ \t]*)(:{3,})(chart-[\w-]+)',
             bygroups(Text, Punctuation, Number), 'directive'),

            # Any other directive
            (r'^([ \t]*)(:{3,})([A-Za-z][\w-]*)',
             bygroups(Text, Punctuation, Name.Tag), 'directive'),

            # Component tags
            (r'(</?)(Columns|Card|ParamField)\b', bygroups(Punctuation, Name.Builtin), 'tag'),

            # Headings
            (r'^#{1,6}[ \t].*$', Generic.Heading),

            # Inline code
            (r'`[^`\n]+`', String.Backtick),

            # Everything else is text
            (r'[^:<`#\n]+', Text),
            (r'\n', Text),
            (r'.', Text),
        ],

        'directive': [
            # [label]
            (r'(\[)([^\]\n]*)(\])', bygroups(Punctuation, String, Punctuation)),
            # {attributes}
            (r'\{', Punctuation, 'attributes'),
            # Zenn shorthand remainder (":::message alert", ":::details Title")
            (r'[ \t]+[^\n{\[]+', String),
            (r'[^\n]', Text),
            (r'\n', Text, '#pop'),
            (r'$', Text, '#pop'),
        ],

        'attributes': [
            (r'\}', Punctuation, '#pop'),
            (r'[#.][\w-]+', Name.Decorator),
            (r'([\w:-]+)(=)("[^"]*"|\'[^\']*\'|[^\s}]+)',
             bygroups(Name.Attribute, Punctuation, Literal.String)),
            (r'[\w:-]+', Name.Attribute),
            (r'\s+', Text),
            (r'.', Text),
        ],

        'tag': [
            (r'/?>', Punctuation, '#pop'),
            (r'([\w:-]+)(=)("[^"]*"|\'[^\']*\')',
             bygroups(Name.Attribute, Punctuation, Literal.String)),
            (r'[\w:-]+', Name.Attribute),
            (r'\s+', Text),
            (r'.', Text),
        ],
    }


def get_lexer() -> WikidownLexer:
    """
    Get the WikidownLexer instance

    Returns:
        WikidownLexer instance ready for use with Pygments
    """
    return WikidownLexer()
