"""
feed-digest - cached feed refresh with streaming AI summaries.

This package refreshes a set of RSS/Atom feeds under strict concurrency
and timeout limits, caches readable article text, streams two-stage
summaries from a language model and keeps bounded caches of summaries and
thumbnail images for fast offline display.

Main entry point is the CLI via the `feed-digest` command.

Example:
    $ feed-digest refresh -f feeds.yaml
    $ feed-digest summarize https://example.com/post --length long
"""

__all__ = [
    "__version__",
    "ConcurrencyGate",
    "RefreshOrchestrator",
    "SummaryPipeline",
    "build_orchestrator",
]
__version__ = "0.1.0"

from .core.gate import ConcurrencyGate
from .runner import RefreshOrchestrator, build_orchestrator
from .summarize.pipeline import SummaryPipeline
