"""
Table-of-contents tests
"""

from wikidown.config.settings import AppSettings
from wikidown.lib.toc import toc_build, toc_extract
from wikidown.models.document import TocNode


def entries(*levels):
    return [TocNode(text=f"h{i}", id=f"h{i}", level=level) for i, level in enumerate(levels)]


class TestTocBuild:
    """Test folding headings into a forest"""

    def test_nesting(self):
        """Levels 1,2,2,3,1 give two roots"""
        forest = toc_build(entries(1, 2, 2, 3, 1))
        assert len(forest) == 2
        assert [child.id for child in forest[0].children] == ["h1", "h2"]
        assert [child.id for child in forest[0].children[1].children] == ["h3"]
        assert forest[1].children == []

    def test_shallower_after_deeper(self):
        """A shallower heading at the start is a new root"""
        forest = toc_build(entries(2, 1))
        assert [entry.level for entry in forest] == [2, 1]

    def test_skipped_level(self):
        """A level-2 heading after a level-3 child becomes its sibling"""
        forest = toc_build(entries(1, 3, 2))
        assert [child.level for child in forest[0].children] == [3, 2]

    def test_empty(self):
        """No headings, empty TOC"""
        assert toc_build([]) == []


class TestTocExtract:
    """Test reading headings from rendered HTML"""

    HTML = '<h1 id="a">A</h1><p>x</p><h2 id="b"> B </h2><h3 id="c">C</h3><h4 id="d">D</h4>'

    def test_extract(self):
        """Text is trimmed and deep headings ignored"""
        forest = toc_extract(self.HTML)
        assert [entry.toDict() for entry in forest] == [{
            "text": "A",
            "id": "a",
            "level": 1,
            "children": [{
                "text": "B",
                "id": "b",
                "level": 2,
                "children": [{"text": "C", "id": "c", "level": 3, "children": []}],
            }],
        }]

    def test_max_level(self):
        """The deepest level is configurable"""
        forest = toc_extract(self.HTML, settings=AppSettings(toc_max_level=2))
        assert forest[0].children[0].children == []

    def test_nested_markup(self):
        """Inline markup inside a heading contributes its text"""
        forest = toc_extract('<h2 id="x">Use <code>pip</code> now</h2>')
        assert forest[0].text == "Use pip now"

    def test_missing_id(self):
        """Headings without an id get an empty one"""
        assert toc_extract("<h1>Plain</h1>")[0].id == ""
