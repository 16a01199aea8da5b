"""
Persistence adapters.

json_storage holds the AppData document used by the storefront and admin UI;
sql_repository wraps the relational catalog. Services depend on these
adapters rather than touching files or sessions directly.
"""
