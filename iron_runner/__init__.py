"""
Iron Runner
===========

Runs IronScript blocks embedded in HTML documents.

IronScript source found in ``<script type="iron">`` elements, inline or
fetched from a ``src`` URL, is rewritten into JavaScript and executed in the
hosting page in document order.

This package provides:
- A pattern-based IronScript to JavaScript transpiler
- A document-order script sequencer with detached (``data-async``) blocks
- Browser hosting and in-page execution with Playwright
"""

from iron_runner.core.transpiler.rewriter import transpile
from iron_runner.core.runtime.runner import IronRuntime
from iron_runner.core.runtime.document import BrowserHost, run_document, run_in_page

__version__ = "1.0.0"

__all__ = [
    "BrowserHost",
    "IronRuntime",
    "run_document",
    "run_in_page",
    "transpile",
]
