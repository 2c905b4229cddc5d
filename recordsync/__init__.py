"""
recordsync

Reconciles records extracted from spreadsheets against a persistent store and
reports what must be added, removed or updated.
"""

__version__ = "1.0.0"
