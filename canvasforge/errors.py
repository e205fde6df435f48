"""Error taxonomy shared by the store, the generator and the HTTP layer."""


class ForgeError(Exception):
    """Base class for every error raised by canvasforge."""


class ValidationError(ForgeError):
    """Malformed caller input, reported with the offending field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFoundOrUnauthorized(ForgeError):
    """The resource does not exist or belongs to someone else.

    Both cases share one outcome so callers cannot probe for other owners' ids.
    """

    def __init__(self, resource: str = "Game"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class GenerationUnavailable(ForgeError):
    """The code generator failed; the caller may try again later."""


class IntegrityFault(ForgeError):
    """Stored state violates a store invariant. Never repaired automatically."""


class VersionContention(ForgeError):
    """Concurrent writers kept taking the next version of a game; safe to retry."""
