"""Handler modules for the pulp operator."""

# Import handlers so their kopf decorators register
from . import pulp_handler

__all__ = ["pulp_handler"]
