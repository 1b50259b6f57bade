"""
Keeper Store - the note storage and retrieval engine behind the Keeper note app.

Notes carry an optional title, a markdown body, tags, pin/archive flags and
attached media. The engine owns the canonical rows, keeps an FTS5 search index
in step with them, and computes the smart views the app shows in its sidebar.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("keeper-store")
except PackageNotFoundError:
    __version__ = "0.3.0"
