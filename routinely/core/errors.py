"""Error taxonomy of the routine engine.

``MissingSessionData`` and ``InvalidBoardState`` are contract violations
raised by the tab model builder before any tab is produced.
``DependencyUnavailable`` wraps storage failures of a collaborator read and
aborts the success summary. Empty collaborator results are not errors.
"""


class RoutineEngineError(Exception):
    """Base class for errors raised by the routine engine."""


class MissingSessionData(RoutineEngineError):
    """The board references a session absent from the supplied session list."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No session data supplied for board entry {session_id}")


class InvalidBoardState(RoutineEngineError):
    """The board contains duplicate or contradictory entries."""


class DependencyUnavailable(RoutineEngineError):
    """A collaborator read failed at the transport or storage level."""

    def __init__(self, dependency: str, cause: Exception | None = None):
        self.dependency = dependency
        self.cause = cause
        message = f"Dependency unavailable: {dependency}"
        if cause is not None:
            message = f"{message} ({type(cause).__name__})"
        super().__init__(message)


class SessionNotFound(RoutineEngineError):
    """The requested routine session does not exist for this child."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Routine session {session_id} not found")
