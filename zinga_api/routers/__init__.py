"""
FastAPI routers grouped by area (data store, backups, payments, catalog).

Each module exposes an APIRouter included by zinga_api.app. Store-backed
routers resolve their services from app.state so tests can build an app per
data directory.
"""
