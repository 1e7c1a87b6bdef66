"""
Runtime
=======

Running transpiled IronScript inside a hosting document.

Components:
- executor: compile-and-run boundary around the page's JavaScript engine
- loader: inline and remote script source loading
- runner: programmatic transpile / run / load-and-run API
- sequencer: document-order discovery and execution of script blocks
- document: browser host and whole-document entry point
"""
