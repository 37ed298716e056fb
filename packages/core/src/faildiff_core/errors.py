"""Exception hierarchy shared by every faildiff package.

Not-found outcomes (no reference commit, no branch guess) are returned as
``None`` by the components that compute them; exceptions are reserved for
input that cannot be trusted and for state that should never exist.
"""

from __future__ import annotations


class FaildiffError(Exception):
    """Base class for all faildiff errors."""


class ValidationError(FaildiffError, ValueError):
    """External input failed validation (bad build payload, malformed commit id)."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class InvariantError(FaildiffError):
    """Persisted or in-memory state violates an internal invariant."""


class ConfigError(FaildiffError):
    """The configuration file is missing something or contradicts itself."""


class RegistrationError(FaildiffError):
    """A new request could not be registered."""


class TriggerError(FaildiffError):
    """Jenkins accepted a trigger call but never produced a build number."""


class GitError(FaildiffError):
    """The local git repository could not be read."""
