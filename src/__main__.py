#!/usr/bin/env python3
"""
wikidown - Markdown rendering pipeline for wiki documents

Renders a directive-extended markdown file to an HTML fragment, the same
way the wiki renders a page, and optionally writes its table of contents
as JSON.

Supported extensions on top of CommonMark/GFM:
    - :::message / :::message alert callouts, :::details accordions
    - :::columns + :::card grids, :::tabs / :::tab panels
    - :::code-tabs tabbed code blocks
    - :::chart-<kind> charts from "name: value" lines
    - <ParamField> API parameter blocks
    - ![alt](url =WxH) image sizes
    - standalone links become embed placeholders (tweet, YouTube, GitHub, card)

Usage:
    wikidown page.md
    wikidown page.md --outputFile page.html --tocFile toc.json -vv
    wikidown --list-directives
"""

import json
import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from typing import List, Optional

from .lib import __version__, LOG, DirectiveRegistry, markdown_render, state_connectToLogger
from .models import DirectiveCategory, ProgramState, pipeline


parser = ArgumentParser(
    description="wikidown - render wiki markdown to HTML",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument("inputFile", type=str, nargs="?", default=None, help="Markdown file to render")

parser.add_argument(
    "--outputFile",
    default=None,
    type=str,
    help="Write HTML here instead of standard output",
)

parser.add_argument(
    "--tocFile",
    default=None,
    type=str,
    help="Also write the table of contents as JSON to this file",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument(
    "--list-directives",
    dest="listDirectives",
    action="store_true",
    help="Print the supported directives by category and exit",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the input file and prepare output locations.

    Returns:
        ProgramState with added fields:
            - inputSourceFile: resolved input path
            - htmlOutputFile: resolved output path (None for stdout)
            - envOK: True if environment is valid

    Exits:
        1 if the input file does not exist
    """
    state = inputstate.copy()
    LOG("Checking environment...", level=2)

    if not state.inputFile:
        print("Error: No input file given", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    input_file = Path(state.inputFile)
    if not input_file.is_file():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)
    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    if state.outputFile:
        state.htmlOutputFile = Path(state.outputFile)
        state.htmlOutputFile.parent.mkdir(parents=True, exist_ok=True)
        LOG(f"Output file: {state.htmlOutputFile}", level=2)

    state.envOK = True
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read the markdown source.

    Returns:
        ProgramState with added field:
            - source: file contents

    Exits:
        1 if the file cannot be read
    """
    state = inputstate.copy()
    try:
        state.source = state.inputSourceFile.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading input file: {e}", file=sys.stderr)
        sys.exit(1)
    LOG(f"Read {len(state.source)} characters from {state.inputSourceFile.name}", level=2)
    return state


def document_render(inputstate: ProgramState) -> ProgramState:
    """
    Render the source.

    Returns:
        ProgramState with added field:
            - renderResult: RenderResult from markdown_render()

    Exits:
        1 if rendering fails
    """
    state = inputstate.copy()
    LOG("Rendering document...", level=1)
    try:
        state.renderResult = markdown_render(state.source, metadata={"path": str(state.inputSourceFile)})
    except Exception as e:
        print(f"Render error: {e}", file=sys.stderr)
        if state.verbosity >= 3:
            import traceback

            traceback.print_exc()
        sys.exit(1)
    return state


def results_write(inputstate: ProgramState) -> ProgramState:
    """
    Write HTML (and optionally the TOC) to their destinations.

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if there is no render result
    """
    state = inputstate.copy()
    if state.renderResult is None:
        print("Error: Rendering failed", file=sys.stderr)
        sys.exit(1)

    if state.htmlOutputFile is not None:
        state.htmlOutputFile.write_text(state.renderResult.html, encoding="utf-8")
        LOG(f"Wrote {state.htmlOutputFile}", level=1)
    else:
        sys.stdout.write(state.renderResult.html)
        sys.stdout.write("\n")

    if state.tocFile:
        toc = [entry.toDict() for entry in state.renderResult.toc]
        Path(state.tocFile).write_text(json.dumps(toc, ensure_ascii=False, indent=2), encoding="utf-8")
        LOG(f"Wrote table of contents to {state.tocFile}", level=1)
    return state


def directives_print(registry: DirectiveRegistry) -> None:
    """
    Print every registered directive, grouped by category, with its
    description and usage examples.
    """
    for category in DirectiveCategory:
        specs = registry.directives_listByCategory(category)
        if not specs:
            continue
        print(f"{category.value}:")
        for spec in specs:
            print(f"  {spec.name:<14} {spec.description}")
            for example in spec.examples:
                for line in example.splitlines():
                    print(f"      {line}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point - render one markdown file, or list the directives.

    Orchestrates the pipeline:
        1. env_check: validate paths
        2. source_read: read the markdown file
        3. document_render: preprocess, parse, transform, compile
        4. results_write: write HTML and TOC

    Args:
        argv: Argument list, defaults to sys.argv[1:]

    Returns:
        Process exit code
    """
    options: Namespace = parser.parse_args(argv)
    if options.listDirectives:
        directives_print(DirectiveRegistry())
        return 0

    state: ProgramState = ProgramState.state_createFromNamespace(options)

    state_connectToLogger(state)
    pipeline(state, env_check, source_read, document_render, results_write)
    return 0


if __name__ == "__main__":
    sys.exit(main())
