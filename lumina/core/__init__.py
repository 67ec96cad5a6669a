"""Core session primitives (session state records and presentation events).

Kept free of FastAPI and Redis concerns so the engines, the controller and tests can share them.
"""
