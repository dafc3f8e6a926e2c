"""Core domain and persistence layer for BuildTrack.

Submodules are imported directly (``from buildtrack.core.phases import ...``)
so that importing the ORM models does not pull in the API layer.
"""
