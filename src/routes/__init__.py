"""
API Routes Package
==================
Route handlers live in api.py; shared utilities live here.

Modules:
  helpers  - CORS origins, payload conversion, text formatting
"""
