"""Typed failures raised by the analysis engine."""

from __future__ import annotations


class CompassError(Exception):
    pass


class CollaboratorUnavailable(CompassError):
    """An external collaborator (inventory query, daemon) failed or timed out."""

    def __init__(self, collaborator: str, cause: BaseException) -> None:
        super().__init__(f"{collaborator} unavailable: {cause}")
        self.collaborator = collaborator
        self.cause = cause
