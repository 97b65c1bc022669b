"""
Megumi record service.

This package provides a FastAPI application in front of a small record store
(user credentials and a product catalog) that falls back to an in-process
store when the configured database is unreachable.
"""
