"""Business logic services for the pulp operator."""

# routes and reconciler build on pulp_operator.kinds, which imports from here;
# import them directly from their modules.
from . import clients
from . import derivative
from . import environment
from . import synthesizer
from . import drift
from . import status

__all__ = ["clients", "derivative", "environment", "synthesizer", "drift", "status"]
