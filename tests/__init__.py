"""
Test Suite
==========

Test suite matching the iron_runner/ directory structure.

Test Categories:
- unit: Unit tests for individual components, no browser required
- integration: Tests running documents in a real Chromium page
"""
