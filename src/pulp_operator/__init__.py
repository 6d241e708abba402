"""Kubernetes operator for Pulp deployments."""

__version__ = "0.1.0"
