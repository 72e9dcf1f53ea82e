"""
Model engine exception hierarchy.
"""
from typing import Any, Optional


class ModelerError(Exception):
    """Base exception for model engine errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        retryable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable
        self.cause = cause


class NoCurrentStateError(ModelerError):
    """Transition requested while the machine has no current state."""

    def __init__(self, message: str = "No current state to validate against!") -> None:
        super().__init__(message)


class LoadError(ModelerError):
    """A state type or transition set could not be resolved."""


class ModelDefinitionError(LoadError):
    """A declarative model definition is missing or malformed."""


class MissingImplementationError(ModelerError, NotImplementedError):
    """A required hook was not supplied by the model."""

    def __init__(self, hook: str) -> None:
        self.hook = hook
        super().__init__(f"Missing implementation: {hook}")


class TransitionFailedError(ModelerError):
    """The new current state failed its self-verification."""

    def __init__(self, state: Any) -> None:
        self.state = state
        super().__init__(
            f"Failed to verify '{type(state).__qualname__}' as current state"
        )


class ArgumentContractError(ModelerError, TypeError):
    """Wrong-typed argument passed to an engine operation."""


class NoValidTransitionError(ModelerError):
    """A selection strategy received no candidates."""


class AmbiguousTransitionError(ModelerError):
    """A selection strategy received more candidates than it accepts."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"Expected exactly one valid transition, got {count}")
