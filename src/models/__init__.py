"""
Models package for wikidown

Contains data structures and type definitions for the rendering pipeline.
"""

from .state import ProgramState, RenderState, pipeline
from .directives import DirectiveSpec, DirectiveCategory, DirectiveContext, VisitAction
from .parser import DirectiveInfo, RenderHint, RenderHintConflict
from .document import (
    CardData,
    ChartDataPoint,
    CodeTab,
    EmbedDescriptor,
    EmbedKind,
    RenderResult,
    TocNode,
)

__all__ = [
    "ProgramState",
    "RenderState",
    "pipeline",
    "DirectiveSpec",
    "DirectiveCategory",
    "DirectiveContext",
    "VisitAction",
    "DirectiveInfo",
    "RenderHint",
    "RenderHintConflict",
    "CardData",
    "ChartDataPoint",
    "CodeTab",
    "EmbedDescriptor",
    "EmbedKind",
    "RenderResult",
    "TocNode",
]
