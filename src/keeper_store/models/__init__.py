"""Data models and table declarations for the Keeper note store."""
