"""
Preprocessor tests

Tests the string-to-string rewrites that run before parsing: Zenn shorthand,
image sizes, <ParamField> blocks and :::columns/:::card tags.
"""

from wikidown.lib.preprocess import (
    blocks_split,
    braceAttributes_toTag,
    columnsSyntax_normalize,
    imageSize_normalize,
    paramField_normalize,
    source_preprocess,
    zennSyntax_normalize,
)


class TestZennSyntax:
    """Test :::message alert and :::details Title rewriting"""

    def test_message_alert(self):
        """message alert becomes a class attribute"""
        source = ":::message alert\nCareful\n:::"
        assert zennSyntax_normalize(source) == ":::message{.alert}\nCareful\n:::"

    def test_plain_message_untouched(self):
        """message without alert is already generic syntax"""
        source = ":::message\nNote\n:::"
        assert zennSyntax_normalize(source) == source

    def test_details_title(self):
        """details title becomes a label"""
        source = ":::details Click me\nHidden\n:::"
        assert zennSyntax_normalize(source) == ":::details[Click me]\nHidden\n:::"

    def test_details_trailing_whitespace_trimmed(self):
        """Trailing blanks after the title are not part of the label"""
        assert zennSyntax_normalize(":::details Title   \nx\n:::") == ":::details[Title]\nx\n:::"

    def test_details_crlf_preserved(self):
        """Carriage returns stay where they were"""
        source = ":::details Title\r\nBody\r\n:::"
        assert zennSyntax_normalize(source) == ":::details[Title]\r\nBody\r\n:::"

    def test_details_last_line_without_newline(self):
        """A title on the final line is still converted"""
        assert zennSyntax_normalize(":::details Last") == ":::details[Last]"

    def test_longer_fence(self):
        """Four-colon openers are directive openers too"""
        assert zennSyntax_normalize("::::message alert") == "::::message{.alert}"

    def test_mid_line_text_untouched(self):
        """Prose mentioning the shorthand is not rewritten"""
        source = "Write :::message alert to get a warning"
        assert zennSyntax_normalize(source) == source

    def test_code_fence_untouched(self):
        """Shorthand inside fenced code is shown verbatim"""
        source = "```\n:::message alert\n:::details Title\n```"
        assert zennSyntax_normalize(source) == source

    def test_after_code_fence(self):
        """Rewriting resumes after a closed fence"""
        source = "```\ncode\n```\n:::message alert\nx\n:::"
        assert zennSyntax_normalize(source) == "```\ncode\n```\n:::message{.alert}\nx\n:::"


class TestImageSize:
    """Test ![alt](url =WxH) rewriting"""

    def test_width_and_height(self):
        """Both dimensions become reserved query parameters"""
        assert imageSize_normalize("![a](/p.png =100x50)") == "![a](/p.png?__width__=100&__height__=50)"

    def test_width_only_with_x(self):
        """Empty height is left out"""
        assert imageSize_normalize("![a](/p.png =100x)") == "![a](/p.png?__width__=100)"

    def test_width_only_without_x(self):
        """The x separator is optional"""
        assert imageSize_normalize("![a](/p.png =100)") == "![a](/p.png?__width__=100)"

    def test_existing_query(self):
        """An existing query string is extended with &"""
        assert imageSize_normalize("![a](/p.png?v=2 =100x50)") == "![a](/p.png?v=2&__width__=100&__height__=50)"

    def test_plain_image_untouched(self):
        """Images without a size suffix are not changed"""
        source = "![alt text](https://example.com/a.png)"
        assert imageSize_normalize(source) == source

    def test_multiple_images(self):
        """Every image on a line is rewritten"""
        result = imageSize_normalize("![a](/a.png =1x2) ![b](/b.png =3x)")
        assert result == "![a](/a.png?__width__=1&__height__=2) ![b](/b.png?__width__=3)"

    def test_code_fence_untouched(self):
        """Size syntax inside code blocks is documentation"""
        source = "```md\n![a](/p.png =100x50)\n```"
        assert imageSize_normalize(source) == source


class TestParamField:
    """Test <ParamField> rewriting"""

    def test_basic(self):
        """Attributes kept in order and body trimmed"""
        source = '<ParamField header="X-Token" type="string">\n  Auth token\n</ParamField>'
        assert paramField_normalize(source) == ':::param-field{header="X-Token" type="string"}\nAuth token\n:::'

    def test_case_insensitive_tag(self):
        """Tag name matching ignores case"""
        source = '<paramfield body="id">x</paramfield>'
        assert paramField_normalize(source) == ':::param-field{body="id"}\nx\n:::'

    def test_single_quoted_attributes_dropped(self):
        """Only double-quoted attributes are recognised"""
        source = "<ParamField header='X' type=\"int\">y</ParamField>"
        assert paramField_normalize(source) == ':::param-field{type="int"}\ny\n:::'

    def test_multiple_fields(self):
        """Each field is converted independently"""
        source = (
            '<ParamField header="A">one</ParamField>\n\n'
            '<ParamField header="B">two</ParamField>'
        )
        result = paramField_normalize(source)
        assert result == ':::param-field{header="A"}\none\n:::\n\n:::param-field{header="B"}\ntwo\n:::'

    def test_body_with_code_block(self):
        """A fenced code block inside the body does not stop the rewrite"""
        source = '<ParamField body="q" type="string">\nExample:\n```js\nlet a = 1\n```\n</ParamField>\n'
        assert paramField_normalize(source) == (
            ':::param-field{body="q" type="string"}\nExample:\n```js\nlet a = 1\n```\n:::\n'
        )

    def test_field_inside_code_untouched(self):
        """A field shown in fenced code stays verbatim; later fields still convert"""
        source = (
            '```html\n<ParamField header="Shown">\n```\n\n'
            '<ParamField header="Real">x</ParamField>'
        )
        assert paramField_normalize(source) == (
            '```html\n<ParamField header="Shown">\n```\n\n'
            ':::param-field{header="Real"}\nx\n:::'
        )


class TestColumnsSyntax:
    """Test :::columns / :::card to tag rewriting"""

    def test_columns_with_cards(self):
        """Cards inside columns become nested tags"""
        source = "\n".join([
            ":::columns{cols=2}",
            ':::card{title="A" href="/a"}',
            "Body A",
            ":::",
            ":::card{title='B & C'}",
            "Body B",
            ":::",
            ":::",
        ])
        expected = "\n".join([
            '<Columns cols="2">',
            '<Card title="A" href="/a">',
            "Body A",
            "</Card>",
            '<Card title="B &amp; C">',
            "Body B",
            "</Card>",
            "</Columns>",
        ])
        assert columnsSyntax_normalize(source) == expected

    def test_indentation_kept(self):
        """Leading whitespace of each fence line is preserved"""
        source = ":::columns\n  :::card\n  x\n  :::\n:::"
        assert columnsSyntax_normalize(source) == "<Columns>\n  <Card>\n  x\n  </Card>\n</Columns>"

    def test_card_outside_columns_untouched(self):
        """A card on its own stays a directive"""
        source = ":::card{title=\"X\"}\nBody\n:::"
        assert columnsSyntax_normalize(source) == source

    def test_other_directives_untouched(self):
        """Bare closing fences outside columns are left alone"""
        source = ":::message\nHi\n:::"
        assert columnsSyntax_normalize(source) == source

    def test_crlf_normalized(self):
        """Line endings are normalized to LF"""
        source = ":::columns\r\n:::card\r\nx\r\n:::\r\n:::"
        assert columnsSyntax_normalize(source) == "<Columns>\n<Card>\nx\n</Card>\n</Columns>"

    def test_code_fence_untouched(self):
        """Columns shown in a code block are not converted"""
        source = "```\n:::columns\n:::card\n:::\n:::\n```"
        assert columnsSyntax_normalize(source) == source

    def test_brace_attributes(self):
        """Attribute suffix conversion"""
        assert braceAttributes_toTag("{cols=3}") == ' cols="3"'
        assert braceAttributes_toTag("") == ''
        assert braceAttributes_toTag("{}") == ''
        assert braceAttributes_toTag("no braces") == ''


class TestChain:
    """Test the composed preprocessor chain"""

    SOURCE = "\n".join([
        ":::message alert",
        "Careful",
        ":::",
        "",
        ":::details More",
        "![cat](/cat.png =200x100)",
        ":::",
        "",
        '<ParamField header="X-Token" type="string">',
        "Token",
        "</ParamField>",
        "",
        ":::columns{cols=2}",
        ':::card{title="A"}',
        "Body",
        ":::",
        ":::",
    ])

    def test_all_rewrites_applied(self):
        """Every shorthand is normalized by one pass"""
        result = source_preprocess(self.SOURCE)
        assert ":::message{.alert}" in result
        assert ":::details[More]" in result
        assert "/cat.png?__width__=200&__height__=100" in result
        assert ':::param-field{header="X-Token" type="string"}' in result
        assert '<Columns cols="2">' in result
        assert '<Card title="A">' in result

    def test_idempotent(self):
        """Running the chain on its own output changes nothing"""
        once = source_preprocess(self.SOURCE)
        assert source_preprocess(once) == once

    def test_empty_source(self):
        """Empty input stays empty"""
        assert source_preprocess("") == ""


class TestBlocksSplit:
    """Test prose/code grouping"""

    def test_alternating_runs(self):
        """Fence lines belong to the code run"""
        blocks = blocks_split(["a", "```", "code", "```", "b"])
        assert blocks == [(False, ["a"]), (True, ["```", "code", "```"]), (False, ["b"])]

    def test_unterminated_fence(self):
        """An open fence runs to the end"""
        assert blocks_split(["~~~", "x"]) == [(True, ["~~~", "x"])]

    def test_shorter_closer_does_not_close(self):
        """A closing fence must be at least as long as the opener"""
        blocks = blocks_split(["````", "```", "````", "after"])
        assert blocks == [(True, ["````", "```", "````"]), (False, ["after"])]
