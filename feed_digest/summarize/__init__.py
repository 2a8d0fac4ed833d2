"""Prompt slicing and the two-stage streaming summary pipeline."""

from .pipeline import SummaryPipeline
from .slicer import is_heading, primer_slice, split_paragraphs, structure_aware_slice

__all__ = [
    "SummaryPipeline",
    "is_heading",
    "primer_slice",
    "split_paragraphs",
    "structure_aware_slice",
]
