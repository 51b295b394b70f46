"""
Render pipeline

markdown_render() runs one document through every stage:

    source_preprocess  text shorthands -> directive syntax
    source_parse       markdown-it tokens -> Node tree (+ front matter)
    tree_transform     directive handlers and tree passes
    html_compile       Node tree -> HTML
    toc_extract        rendered headings -> TocNode forest

Each stage is a function (RenderState) -> RenderState composed with
pipeline(). Every call builds fresh parser/transformer/compiler
instances, so concurrent renders share nothing.

Example:
    >>> result = markdown_render("# Hello\\n\\n:::message\\nHi\\n:::")
    >>> result.toc[0].id
    'hello'
"""

from typing import Any, Dict, Optional

from ..config.settings import AppSettings, appsettings
from ..models.document import RenderResult
from ..models.state import RenderState, pipeline
from .compiler import Compiler
from .parser import Parser
from .preprocess import source_preprocess as text_preprocess
from .toc import toc_extract as headings_extract
from .transforms import Transformer
from .log import LOG, state_connectToLogger


def source_preprocess(inputstate: RenderState) -> RenderState:
    """
    Run the text preprocessors.

    Returns:
        RenderState with added field:
            - preprocessed: normalized markdown
    """
    state = inputstate.copy()
    state.preprocessed = text_preprocess(state.source)
    LOG(f"Preprocessed {len(state.source)} -> {len(state.preprocessed)} characters", level=3)
    return state


def source_parse(inputstate: RenderState) -> RenderState:
    """
    Parse the preprocessed markdown.

    Returns:
        RenderState with added fields:
            - tree: document root Node
            - front_matter: parsed YAML front matter
    """
    state = inputstate.copy()
    parser = Parser(state.preprocessed, settings=state.settings)
    state.tree = parser.parse()
    state.front_matter = parser.front_matter
    return state


def tree_transform(inputstate: RenderState) -> RenderState:
    """Apply directive handlers and tree passes (tree mutated in place)"""
    state = inputstate.copy()
    Transformer(settings=state.settings, metadata=state.metadata).transform(state.tree)
    return state


def html_compile(inputstate: RenderState) -> RenderState:
    """
    Render the transformed tree.

    Returns:
        RenderState with added field:
            - html: HTML fragment
    """
    state = inputstate.copy()
    state.html = Compiler(settings=state.settings).compile(state.tree)
    return state


def toc_extract(inputstate: RenderState) -> RenderState:
    """
    Extract the table of contents from the rendered HTML.

    Returns:
        RenderState with added field:
            - toc: TocNode forest
    """
    state = inputstate.copy()
    state.toc = headings_extract(state.html, settings=state.settings)
    LOG(f"Extracted {len(state.toc)} top-level TOC entries", level=3)
    return state


def markdown_render(
    source: str,
    metadata: Optional[Dict[str, Any]] = None,
    settings: Optional[AppSettings] = None,
    verbosity: Optional[int] = None,
) -> RenderResult:
    """
    Render a markdown document to HTML plus its table of contents.

    Args:
        source: Raw markdown
        metadata: Opaque bag passed to directive handlers
        settings: Rendering settings, defaults to the appsettings singleton
        verbosity: Logging verbosity for this render; when omitted the
            currently connected logging state is left in place

    Returns:
        RenderResult with html, toc, front_matter and the transformed tree
    """
    state = RenderState(
        source=source,
        metadata=metadata if metadata is not None else {},
        settings=settings or appsettings,
        verbosity=verbosity or 0,
    )
    if verbosity is not None:
        state_connectToLogger(state)

    final = pipeline(state, source_preprocess, source_parse, tree_transform, html_compile, toc_extract)
    return RenderResult(html=final.html, toc=final.toc, front_matter=final.front_matter, tree=final.tree)
