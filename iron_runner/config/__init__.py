"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Runner settings and environment configuration
- logging: Structured logging configuration
"""
