"""Service layer for the Keeper note store."""
