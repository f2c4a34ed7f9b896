"""Database models and session helpers."""
