"""Exceptions raised by the reconcile pass."""


class PulpOperatorError(Exception):
    """Base class for operator errors."""


class SpecError(PulpOperatorError):
    """The Pulp resource cannot be reconciled as declared."""


class ExecError(PulpOperatorError):
    """Running a command inside a pod failed."""

    def __init__(self, pod_name, message):
        super().__init__(f"exec in pod {pod_name} failed: {message}")
        self.pod_name = pod_name
