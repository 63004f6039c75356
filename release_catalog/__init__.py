"""
Read-only HTTP catalog of software releases.

The catalog is a four level tree (repository -> channel -> release -> artifact)
stored in SQLite and served by FastAPI.
"""

__version__ = "0.1.0"
