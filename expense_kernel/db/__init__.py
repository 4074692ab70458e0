"""Database infrastructure: declarative base, column types, engine and sessions."""
