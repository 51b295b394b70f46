"""
Parser tests

Tests conversion of markdown into the document tree: plain CommonMark
blocks, container directives with labels and attributes, <Columns>/<Card>
tag containers and YAML front matter.
"""

import pytest
from markdown_it.tree import SyntaxTreeNode

from wikidown.config.settings import AppSettings
from wikidown.lib.parser import (
    Node,
    Parser,
    attributes_parse,
    directiveInfo_parse,
    tagAttributes_parse,
)
from wikidown.models.parser import RenderHintConflict


def parse(source, **overrides):
    settings = AppSettings(**overrides) if overrides else None
    return Parser(source, settings).parse()


class TestBasicBlocks:
    """Test CommonMark blocks"""

    def test_empty_source(self):
        """Empty string parses to an empty root"""
        root = parse("")
        assert root.type == "root"
        assert root.children == []

    def test_whitespace_only(self):
        """Blank lines produce no blocks"""
        assert parse("   \n\n  \n").children == []

    def test_paragraph(self):
        """Plain text becomes a paragraph with one text node"""
        root = parse("Hello World")
        assert len(root.children) == 1
        paragraph = root.children[0]
        assert paragraph.type == "paragraph"
        assert paragraph.children == [Node("text", value="Hello World")]

    def test_heading_depth(self):
        """ATX headings keep their level"""
        root = parse("# One\n\n### Three")
        assert [(n.type, n.depth) for n in root.children] == [("heading", 1), ("heading", 3)]

    def test_line_numbers(self):
        """Blocks remember the source line they start on"""
        root = parse("first\n\nsecond")
        assert [n.line_number for n in root.children] == [1, 3]

    def test_fenced_code(self):
        """Info string splits into language and meta"""
        root = parse("```js title=app.js\nlet a = 1\n```")
        code = root.children[0]
        assert code.type == "code"
        assert code.lang == "js"
        assert code.meta == "title=app.js"
        assert code.value == "let a = 1"

    def test_fenced_code_without_info(self):
        """No info string means no language and no meta"""
        code = parse("```\nplain\n```").children[0]
        assert code.lang is None
        assert code.meta is None

    def test_tight_list_paragraphs_hidden(self):
        """Tight list items hold hidden paragraphs"""
        root = parse("- a\n- b")
        lst = root.children[0]
        assert lst.type == "list"
        assert lst.ordered is False
        assert all(item.children[0].hidden for item in lst.children)

    def test_ordered_list_start(self):
        """Ordered lists keep their start number"""
        lst = parse("3. c\n4. d").children[0]
        assert lst.ordered is True
        assert lst.start == 3

    def test_table(self):
        """Tables flatten into rows of cells with header and alignment"""
        root = parse("| a | b |\n|:--|:-:|\n| 1 | 2 |")
        table = root.children[0]
        assert table.type == "table"
        assert len(table.children) == 2
        header, body = table.children
        assert all(cell.header for cell in header.children)
        assert not any(cell.header for cell in body.children)
        assert [cell.align for cell in body.children] == ["left", "center"]

    def test_html_block(self):
        """Raw HTML blocks are kept as html nodes"""
        node = parse("<div>\nraw\n</div>").children[0]
        assert node.type == "html"
        assert node.value == "<div>\nraw\n</div>"


class TestInlines:
    """Test inline conversion"""

    def test_soft_break_with_breaks(self):
        """Newlines inside a paragraph become break nodes by default"""
        paragraph = parse("a\nb").children[0]
        assert [n.type for n in paragraph.children] == ["text", "break", "text"]

    def test_soft_break_without_breaks(self):
        """With breaks off, newlines stay in the text"""
        paragraph = parse("a\nb", breaks=False).children[0]
        assert paragraph.children == [Node("text", value="a\nb")]

    def test_emphasis_strong_delete(self):
        """Emphasis kinds map to mdast names"""
        paragraph = parse("*a* **b** ~~c~~").children[0]
        kinds = [n.type for n in paragraph.children if n.type != "text"]
        assert kinds == ["emphasis", "strong", "delete"]

    def test_inline_code(self):
        """Backtick spans become inlineCode"""
        paragraph = parse("use `x = 1` here").children[0]
        assert paragraph.children[1] == Node("inlineCode", value="x = 1")

    def test_link(self):
        """Links carry their url and title"""
        link = parse('[site](https://example.com "Title")').children[0].children[0]
        assert link.type == "link"
        assert link.url == "https://example.com"
        assert link.title == "Title"
        assert link.children[0].value == "site"

    def test_image(self):
        """Images carry url and alt text"""
        image = parse("![a cat](/cat.png)").children[0].children[0]
        assert image.type == "image"
        assert image.url == "/cat.png"
        assert image.alt == "a cat"

    def test_linkify(self):
        """Bare URLs become links"""
        paragraph = parse("see https://example.com now").children[0]
        links = [n for n in paragraph.children if n.type == "link"]
        assert len(links) == 1
        assert links[0].url == "https://example.com"

    def test_linkify_disabled(self):
        """Bare URLs stay text when linkify is off"""
        paragraph = parse("see https://example.com now", linkify=False).children[0]
        assert [n.type for n in paragraph.children] == ["text"]


class TestDirectives:
    """Test ::: container directives"""

    def test_simple_directive(self):
        """Name, attributes and block children"""
        root = parse(':::message{.alert #m data=x}\nHi\n:::')
        directive = root.children[0]
        assert directive.is_directive("message")
        assert directive.attributes == {"class": "alert", "id": "m", "data": "x"}
        assert directive.children[0].type == "paragraph"
        assert directive.children[0].children[0].value == "Hi"

    def test_label_becomes_first_paragraph(self):
        """A [label] is parsed as inline markdown into a leading paragraph"""
        directive = parse(":::details[Click *here*]\nBody\n:::").children[0]
        label = directive.children[0]
        assert label.type == "paragraph"
        assert label.label is True
        assert label.children[0].value == "Click "
        assert label.children[1].type == "emphasis"
        assert directive.children[1].children[0].value == "Body"

    def test_bare_fence_is_not_a_directive(self):
        """A lone ::: line is plain text"""
        root = parse(":::\n\ntext")
        assert not any(n.is_directive() for n in root.children)

    def test_trailing_garbage_is_not_a_directive(self):
        """Text after the attribute block rejects the opener"""
        root = parse(":::message{x} extra\nHi\n:::")
        assert not root.children[0].is_directive()

    def test_unterminated_directive(self):
        """An unclosed directive runs to the end of the document"""
        directive = parse(":::message\nHi").children[0]
        assert directive.is_directive("message")
        assert directive.children[0].children[0].value == "Hi"

    def test_longer_fence_nests(self):
        """A four-colon parent can hold three-colon children"""
        root = parse('::::tabs\n:::tab{title="A"}\nX\n:::\n::::')
        assert len(root.children) == 1
        tabs = root.children[0]
        assert tabs.is_directive("tabs")
        assert tabs.children[0].is_directive("tab")
        assert tabs.children[0].attributes == {"title": "A"}

    def test_label_with_brackets(self):
        """A Zenn details title with brackets still opens a directive"""
        directive = parse(":::details[Step [1] setup]\nBody\n:::").children[0]
        assert directive.is_directive("details")
        assert directive.children[0].children[0].value == "Step [1] setup"

    def test_malformed_opener_becomes_plain_container(self):
        """A container whose opener cannot be parsed keeps its children"""
        parser = Parser("")
        tokens = parser.md.parse(":::note\nBody\n:::")
        tokens[0].info = "not a name!"
        container = SyntaxTreeNode(tokens).children[0]
        node = parser.directive_convert(container, 1)
        assert node.is_directive("")
        assert node.children[0].children[0].value == "Body"

    def test_equal_fences_close_early(self):
        """The first bare ::: closes the outer container of the same length"""
        source = ":::columns\n:::card\nA\n:::\n:::card\nB\n:::\n:::"
        root = parse(source)
        assert root.children[0].is_directive("columns")
        assert [n.name for n in root.children[0].children] == ["card"]
        assert root.children[1].is_directive("card")
        assert root.children[2].type == "paragraph"


class TestTagContainers:
    """Test <Columns>/<Card> tag containers"""

    def test_nested_tags(self):
        """Cards nest inside columns"""
        source = '<Columns cols="3">\n<Card title="A">\nBody\n</Card>\n</Columns>'
        root = parse(source)
        assert len(root.children) == 1
        columns = root.children[0]
        assert columns.is_directive("columns")
        assert columns.attributes == {"cols": "3"}
        card = columns.children[0]
        assert card.is_directive("card")
        assert card.attributes == {"title": "A"}
        assert card.children[0].children[0].value == "Body"

    def test_multiple_cards(self):
        """Sibling cards all land in the columns container"""
        source = "<Columns>\n<Card>\na\n</Card>\n<Card>\nb\n</Card>\n</Columns>\n\nafter"
        root = parse(source)
        assert [n.name for n in root.children[0].children] == ["card", "card"]
        assert root.children[1].type == "paragraph"

    def test_unclosed_tag(self):
        """A missing close tag runs to the end"""
        root = parse("<Columns>\n<Card>\nx")
        assert root.children[0].is_directive("columns")
        assert root.children[0].children[0].is_directive("card")

    def test_entities_unescaped(self):
        """Attribute values are entity-decoded"""
        card = parse('<Card title="B &amp; C">\nx\n</Card>').children[0]
        assert card.attributes == {"title": "B & C"}

    def test_markdown_inside_card(self):
        """Card content is parsed as markdown"""
        card = parse("<Card>\n# Head\n\n- item\n</Card>").children[0]
        assert [n.type for n in card.children] == ["heading", "list"]


class TestFrontMatter:
    """Test YAML front matter"""

    def test_front_matter(self):
        """Front matter is loaded and produces no node"""
        parser = Parser("---\ntitle: Hello\ntags: [a, b]\n---\n# Body")
        root = parser.parse()
        assert parser.front_matter == {"title": "Hello", "tags": ["a", "b"]}
        assert [n.type for n in root.children] == ["heading"]

    def test_invalid_front_matter(self):
        """Invalid YAML yields an empty mapping"""
        parser = Parser("---\n: [\n---\ntext")
        parser.parse()
        assert parser.front_matter == {}

    def test_no_front_matter(self):
        """Documents without front matter have an empty mapping"""
        parser = Parser("text")
        parser.parse()
        assert parser.front_matter == {}


class TestAttributeParsing:
    """Test attribute block parsing helpers"""

    def test_all_forms(self):
        """id, classes, quoted and bare values, flags"""
        attributes = attributes_parse('#main .a .b cols=3 title="Hi there" open')
        assert attributes == {"id": "main", "class": "a b", "cols": "3", "title": "Hi there", "open": ""}

    def test_class_merge(self):
        """class= and .name shorthands are merged"""
        assert attributes_parse('.a class="b c"') == {"class": "a b c"}

    def test_single_quotes(self):
        """Single-quoted values are accepted"""
        assert attributes_parse("title='x y'") == {"title": "x y"}

    def test_directive_info(self):
        """Opener text splits into name, label and attributes"""
        info = directiveInfo_parse('chart-radar[Skills]{height=300}')
        assert info.name == "chart-radar"
        assert info.label == "Skills"
        assert info.attributes == {"height": "300"}

    def test_directive_info_rejects_empty(self):
        """An empty opener is a closing fence"""
        assert directiveInfo_parse("") is None
        assert directiveInfo_parse("  ") is None

    def test_directive_info_nested_brackets(self):
        """Balanced brackets inside a label are part of the label"""
        info = directiveInfo_parse("details[Step [1] setup]{open}")
        assert info.name == "details"
        assert info.label == "Step [1] setup"
        assert info.attributes == {"open": ""}

    def test_directive_info_escaped_bracket(self):
        """An escaped bracket does not close the label"""
        assert directiveInfo_parse(r"details[a \] b]").label == r"a \] b"

    def test_directive_info_unbalanced_label(self):
        """A label that never closes rejects the opener"""
        assert directiveInfo_parse("details[Step [1 setup]") is None
        assert directiveInfo_parse("details[a]b") is None

    def test_tag_attributes(self):
        """HTML-style tag attributes"""
        assert tagAttributes_parse(' cols="2" icon=star flag') == {"cols": "2", "icon": "star", "flag": ""}


class TestRenderHint:
    """Test single-writer render hints"""

    def test_claim(self):
        """Claiming attaches tag and properties"""
        node = Node("containerDirective", name="message")
        hint = node.claim("message", "aside", {"className": "msg"})
        assert node.hint is hint
        assert hint.tag == "aside"
        assert hint.properties == {"className": "msg"}

    def test_same_owner_reclaims(self):
        """The owning transform may rewrite its own hint"""
        node = Node("paragraph")
        node.claim("details", "div")
        node.claim("details", "section")
        assert node.hint.tag == "section"

    def test_conflicting_claim(self):
        """A second owner is rejected"""
        node = Node("paragraph", line_number=4)
        node.claim("message", "pre")
        with pytest.raises(RenderHintConflict, match="already claimed by 'message'"):
            node.claim("details", "div")
        assert node.hint.owner == "message"
