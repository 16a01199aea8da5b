"""Zinga Linga data API (JSON document store, backups, payments and catalog)."""
