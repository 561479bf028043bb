class FormflowError(Exception):
    """Base class for contract violations by callers of the engine."""


class IllegalTransitionError(FormflowError):
    """Raised when a wizard action is not available in the current state."""


class UnknownPathError(FormflowError, LookupError):
    """Raised when a FieldPath does not address a declared field or section."""
