"""Web layer of smart_search."""
