"""
Data Models
===========

Pydantic models for script units and run reports.
"""
