class AutogradError(Exception):
    """Base class for every error raised by dagrad."""


class ShapeMismatchError(AutogradError, ValueError):
    """Operand shapes are incompatible with an operation's shape rule.

    Raised while a node is being constructed, before any buffer is allocated
    or the backend is called, so no partially built node ever escapes.
    """

    def __init__(self, op, expected, actual):
        self.op = op
        self.expected = expected
        self.actual = actual
        super().__init__(str(self))

    def __str__(self):
        return f"{self.op}: expected {self.expected}, got {self.actual}."


class CapabilityError(AutogradError, TypeError):
    """A gradient was requested of, or with respect to, a tensor that cannot carry one."""


class UnregisteredOperationError(AutogradError, LookupError):
    """An operation is unknown to the catalog or lacks one of its rules."""


class BackendError(AutogradError, RuntimeError):
    """The compute backend failed while producing a buffer."""
