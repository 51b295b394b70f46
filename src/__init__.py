"""
wikidown - Markdown rendering pipeline for wiki documents

Directive-extended markdown in, HTML plus table of contents out.
"""

__version__ = "1.0.0"

from .lib import Parser, Node, Compiler, DirectiveRegistry, Transformer, markdown_render, LOG, state_connectToLogger

__all__ = [
    "Parser",
    "Node",
    "Compiler",
    "DirectiveRegistry",
    "Transformer",
    "markdown_render",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
