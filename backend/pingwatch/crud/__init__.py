"""SQLAlchemy implementations of the storage operations the engine needs."""
