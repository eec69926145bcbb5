"""Error types for the presentation engine.

Every operation of the state machine, the session coordinator and the
queue raises one of these. None of them is fatal: the UI shows the
message and the recovery suggestion and carries on.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from church_hymn.presenter.services.state_machine import DisplayState


class PresentationError(Exception):
    """Base class for presentation engine errors."""

    recovery_suggestion: str = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransitionError(PresentationError):
    """Operation called in a state that forbids it.

    Attributes:
        operation: Name of the rejected operation
        from_state: State the machine was in
        to_state: State the operation would have entered, if known
    """

    def __init__(
        self,
        operation: str,
        from_state: Optional["DisplayState"],
        to_state: Optional["DisplayState"] = None,
        message: Optional[str] = None,
    ):
        self.operation = operation
        self.from_state = from_state
        self.to_state = to_state
        if message is None:
            if to_state is not None:
                message = from_state.transition_error_message(to_state) or (
                    f"Cannot {operation} while {from_state.display_name}."
                )
            else:
                message = f"Cannot {operation} while {from_state.display_name}."
        super().__init__(message)

    @property
    def recovery_suggestion(self) -> str:  # type: ignore[override]
        if self.from_state is None:
            return ""
        actions = ", ".join(self.from_state.suggested_actions)
        return f"Available actions: {actions}." if actions else ""


class OutOfRangeError(InvalidTransitionError):
    """Verse index outside the hymn's presentation sequence."""

    def __init__(self, index: int, length: int, from_state: Optional["DisplayState"] = None):
        self.index = index
        self.length = length
        super().__init__(
            "go to verse",
            from_state,
            message=f"Verse index {index} is out of range (hymn has {length} slides).",
        )

    recovery_suggestion = "Pick a verse shown in the hymn's verse list."


class NoExternalDisplayError(PresentationError):
    """Operation needs a connected external display."""

    recovery_suggestion = "Connect a projector or external monitor and try again."

    def __init__(self, message: str = "No external display found. Please connect a projector or external monitor."):
        super().__init__(message)


class NoActiveServiceError(PresentationError):
    recovery_suggestion = "Create and activate a service before starting a worship session."

    def __init__(self, message: str = "No active service found."):
        super().__init__(message)


class EmptyServiceError(PresentationError):
    recovery_suggestion = "Add at least one hymn to your active service before starting a worship session."

    def __init__(self, message: str = "Cannot start a worship session with an empty service."):
        super().__init__(message)


class SessionAlreadyActiveError(PresentationError):
    recovery_suggestion = "Stop the current worship session before starting a new one."

    def __init__(self, message: str = "Worship session is already active."):
        super().__init__(message)


class SessionNotActiveError(PresentationError):
    recovery_suggestion = "Start a worship session first."

    def __init__(self, message: str = "No worship session is currently active."):
        super().__init__(message)


class HymnNotFoundError(PresentationError):
    """Referenced hymn id is missing from the library."""

    recovery_suggestion = "Select the hymn again from the service list."

    def __init__(self, hymn_id: str):
        self.hymn_id = hymn_id
        super().__init__(f"Hymn not found: {hymn_id}")


class PresentationFailedError(PresentationError):
    """The output surface failed to render or swap content."""

    recovery_suggestion = "Check the external display connection and try presenting again."

    def __init__(self, details: str, cause: Optional[Exception] = None):
        super().__init__(f"Failed to present to external display: {details}")
        self.cause = cause
