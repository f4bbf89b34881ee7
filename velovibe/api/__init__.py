"""
HTTP API: FastAPI routes and dependencies.
"""
