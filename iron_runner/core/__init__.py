"""
Core Business Logic
==================

Core modules for IronScript transpilation and in-document execution.

Modules:
- transpiler: IronScript to JavaScript rewriting
- runtime: script discovery, loading, sequencing, and execution
"""
