"""
High-level use cases for the Zinga API.

Each service orchestrates repositories to implement business rules (merge
saves, restore backups, confirm payments, coerce catalog payloads). Routers
call these services instead of touching files or sessions directly.
"""
