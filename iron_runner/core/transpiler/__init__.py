"""
IronScript Transpiler
=====================

Ordered, pattern-based rewriting of IronScript source into JavaScript.
"""
