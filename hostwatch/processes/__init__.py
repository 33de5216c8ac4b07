"""List, search, inspect and kill OS processes."""
