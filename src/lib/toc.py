"""
Table-of-contents extraction

Headings are read back from the rendered HTML, so the ids in the TOC are
exactly the ids the reader's browser will scroll to.
"""

from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from ..config.settings import AppSettings, appsettings
from ..models.document import TocNode


def toc_build(headings: Iterable[TocNode]) -> List[TocNode]:
    """
    Fold a flat heading sequence into a forest.

    Each heading goes into the top-level list unless the last entry there
    has a smaller level, in which case the same test is repeated in that
    entry's children, descending as far as needed.

    Args:
        headings: TocNode entries in document order (children empty)

    Returns:
        Top-level TocNode list

    Example:
        Levels [1, 2, 2, 3, 1] give two roots; the first has two children
        and the second of those has one child.
    """
    forest: List[TocNode] = []
    for current in headings:
        target = forest
        while target and target[-1].level < current.level:
            target = target[-1].children
        target.append(current)
    return forest


def toc_extract(html: str, settings: Optional[AppSettings] = None) -> List[TocNode]:
    """
    Build the table of contents of a rendered document.

    Args:
        html: Rendered HTML fragment
        settings: Controls the deepest heading level collected

    Returns:
        TocNode forest
    """
    settings = settings or appsettings
    soup = BeautifulSoup(html, "html.parser")
    headings = [
        TocNode(
            text=element.get_text().strip(),
            id=str(element.get("id", "")),
            level=int(element.name[1]),
        )
        for element in soup.find_all(settings.tocTags_list())
    ]
    return toc_build(headings)
