"""
Core utilities shared across the Zinga API.

This package hosts configuration helpers (env vars, data paths, guard policy),
logging setup and password hashing. Services and routers depend on these
primitives instead of reading os.environ directly.
"""
