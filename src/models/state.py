"""
Program state models and pipeline helper

Defines the state-bus dataclasses carried through the two functional
pipelines (the per-document render pipeline and the CLI pipeline), and the
pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable, TYPE_CHECKING
from dataclasses import dataclass, field
import dataclasses

if TYPE_CHECKING:
    from ..config.settings import AppSettings
    from .document import RenderResult, TocNode


S = TypeVar("S")


class StateBus:
    """Mixin giving state dataclasses a shallow copy() for pipeline stages"""

    def copy(self: S) -> S:
        """
        Creates a shallow copy of the state instance.

        Returns:
            A new instance of the same class sharing field values.
        """
        return type(self)(**self.__dict__)


@dataclass
class RenderState(StateBus):
    """
    State container for rendering a single markdown document.

    Pipeline stages and their state additions:
        - Initial: source, metadata, settings, verbosity
        - source_preprocess: preprocessed
        - source_parse: tree, front_matter
        - tree_transform: (tree mutated in place)
        - html_compile: html
        - toc_extract: toc

    Attributes:
        source: Raw markdown text as supplied by the caller
        metadata: Opaque bag handed to every directive handler
        settings: AppSettings in effect for this render
        verbosity: Logging verbosity level
        preprocessed: Source after the text preprocessors ran
        tree: Root Node of the parsed (later transformed) document
        front_matter: Parsed YAML front matter
        html: Rendered HTML fragment
        toc: Table-of-contents forest
    """

    source: str = field(default="")
    metadata: Dict[str, Any] = field(default_factory=dict)
    settings: Optional['AppSettings'] = field(default=None)
    verbosity: int = field(default=0)

    preprocessed: str = field(default="")
    tree: Optional[Any] = field(default=None)  # Node at runtime
    front_matter: Dict[str, Any] = field(default_factory=dict)
    html: str = field(default="")
    toc: List['TocNode'] = field(default_factory=list)


@dataclass
class ProgramState(StateBus):
    """
    Central state container for the command line pipeline.

    Pipeline stages and their state additions:
        - Initial: inputFile, outputFile, tocFile, verbosity
        - env_check: inputSourceFile, htmlOutputFile, envOK
        - source_read: source
        - document_render: renderResult
        - results_write: (no additions, terminal stage)

    Attributes:
        inputFile: Markdown file to render
        outputFile: HTML destination, None writes to stdout
        tocFile: Optional JSON destination for the table of contents
        verbosity: Logging verbosity level (1-3)
        envOK: Environment validation passed
        inputSourceFile: Resolved path to the input file
        htmlOutputFile: Resolved path of the HTML destination
        source: Contents of the input file
        renderResult: Output of markdown_render()
    """

    # CLI arguments
    inputFile: str = field(default="")
    outputFile: Optional[str] = field(default=None)
    tocFile: Optional[str] = field(default=None)
    verbosity: int = field(default=1)

    # Pipeline state
    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    htmlOutputFile: Optional[Path] = field(default=None)
    source: str = field(default="")
    renderResult: Optional['RenderResult'] = field(default=None)

    @classmethod
    def state_createFromNamespace(cls: Type["ProgramState"], options: Namespace) -> "ProgramState":
        """
        Create ProgramState from an argparse Namespace.

        Options that do not correspond to a ProgramState field are ignored.

        Args:
            options: Parsed CLI arguments

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        return cls(**filtered_options)


def pipeline(initial_state: S, *stages: Callable[[S], S]) -> S:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (state) -> state that receives the output of
    the previous stage and returns a new state.

    Args:
        initial_state: Starting state
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final state after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            source_preprocess,
            source_parse,
            tree_transform,
            html_compile,
            toc_extract,
        )

    This is equivalent to:
        toc_extract(html_compile(tree_transform(source_parse(source_preprocess(initial_state)))))

    But reads left-to-right instead of inside-out.
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
