"""Terminal user interface for Talk2Me."""
