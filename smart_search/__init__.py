"""smart_search package."""
