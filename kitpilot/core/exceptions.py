"""
Exceptions
==========
Error taxonomy shared by the edit engine.

    SetupError              — missing toolchain, credential or provider config.
                              Fatal to the enclosing command; message carries
                              the remediation.
    AIRequestError          — the model request failed (HTTP error, timeout).
    MalformedResponseError  — the model reply is not a JSON array of file changes.
    SnapshotError           — git failed during an essential snapshot operation.
"""


class KitpilotError(Exception):
    """Base class for all edit-engine errors."""


class SetupError(KitpilotError):
    pass


class AIRequestError(KitpilotError):
    pass


class MalformedResponseError(KitpilotError):
    pass


class SnapshotError(KitpilotError):
    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr
