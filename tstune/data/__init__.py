"""
Time-series data containers.

Includes:
- dataset: Validated, chronologically ordered (period, count) series
"""
