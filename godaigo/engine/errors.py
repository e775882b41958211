"""Errors raised by a match session and the rules plugin it drives.

Plugins report rule violations as ``InvalidActionError``; the session
raises the envelope errors before a plugin is consulted.
"""

from __future__ import annotations

from godaigo.engine.models import Action


class GameEngineError(Exception):
    """Base class for engine errors."""
    pass


class InvalidActionError(GameEngineError):
    """The plugin rejected an action; ``message`` is the rule that failed."""

    def __init__(self, message: str, action: Action | None = None):
        self.message = message
        self.action = action
        super().__init__(message)


class GameNotActiveError(GameEngineError):
    """Action submitted to a match that is not in progress."""
    pass


class NotYourTurnError(GameEngineError):
    """Player is neither the active player nor due in an open response window."""
    pass


class PluginError(GameEngineError):
    """Plugin could not read or produce its game data."""

    def __init__(self, message: str, original: Exception | None = None):
        self.message = message
        self.original = original
        super().__init__(message)


class InvariantViolationError(GameEngineError):
    """Rules state broke a conservation or exclusivity invariant."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__("; ".join(violations))
