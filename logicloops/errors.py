"""Exception types raised by the loop compiler and its runtime."""

from typing import Any


class SpecificationError(TypeError):
    """A loop specifier does not match any supported iterator shape."""

    def __init__(self, descriptor: Any, reason: str = ""):
        self.descriptor = descriptor
        self.reason = reason
        message = f"invalid do/2 loop specifier: {descriptor!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InstantiationError(ValueError):
    """An argument is an unbound variable where a value is required."""

    def __init__(self, culprit: Any = None, context: str = ""):
        self.culprit = culprit
        self.context = context
        message = "arguments are not sufficiently instantiated"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class ExistenceError(LookupError):
    """A goal calls a procedure that is neither a builtin nor registered."""

    def __init__(self, name: str, arity: int):
        self.name = name
        self.arity = arity
        super().__init__(f"unknown procedure {name}/{arity}")
