"""
journal_core - offline-first sync core for the weather journal.
"""

__version__ = "1.0.0"
