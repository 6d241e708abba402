"""Pydantic models for the Pulp CRD."""

# Import all models to ensure they're registered
from . import pulp
from . import routes

__all__ = ["pulp", "routes"]
