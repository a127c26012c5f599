"""
notemerge - backup-restore merging for a structured note store.

Given a batch of exported notes and the current contents of the store, the
import pipeline skips notes that already exist, splits oversized notes into
linked fragments, and rewrites note-to-note links so they point at the
identifiers assigned during the restore.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notemerge")
except PackageNotFoundError:
    __version__ = "0.3.0"
