"""
Shared utilities.

Includes:
- logging: Logging setup and LoggingMixin
"""
