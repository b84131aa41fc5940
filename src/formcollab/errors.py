from __future__ import annotations


class BackendError(Exception):
    """Storage or auth backend call failed."""


class NotAuthenticatedError(Exception):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class FieldDefinitionError(ValueError):
    pass
