"""Publication targets and the four-state machine derived from the two flags.

A game is visible on zero, one or both public channels.  The two boolean
columns on ``Game`` are the storage form; ``PublicationState`` is the form the
publication manager reasons about, with every transition listed in
``_TRANSITIONS`` so the table stays exhaustive.
"""
from enum import Enum

from canvasforge.errors import ValidationError


class PublicationTarget(str, Enum):
    # playable, code hidden
    MARKETPLACE = "marketplace"
    # playable and forkable, code visible
    COMMUNITY = "community"


class PublicationState(str, Enum):
    PRIVATE = "private"
    MARKETPLACE = "marketplace"
    COMMUNITY = "community"
    BOTH = "both"

    @classmethod
    def from_flags(cls, *, marketplace: bool, community: bool) -> "PublicationState":
        return _BY_FLAGS[(bool(marketplace), bool(community))]

    @property
    def flags(self) -> tuple[bool, bool]:
        """``(published_to_marketplace, published_to_community)``."""
        return _FLAGS[self]

    def is_published_to(self, target: PublicationTarget) -> bool:
        marketplace, community = self.flags
        return marketplace if target is PublicationTarget.MARKETPLACE else community

    def publish(self, target: PublicationTarget) -> "PublicationState":
        return _TRANSITIONS[(self, "publish", target)]

    def unpublish(self, target: PublicationTarget) -> "PublicationState":
        return _TRANSITIONS[(self, "unpublish", target)]


_FLAGS = {
    PublicationState.PRIVATE: (False, False),
    PublicationState.MARKETPLACE: (True, False),
    PublicationState.COMMUNITY: (False, True),
    PublicationState.BOTH: (True, True),
}

_BY_FLAGS = {flags: state for state, flags in _FLAGS.items()}

_S = PublicationState
_T = PublicationTarget
_TRANSITIONS = {
    (_S.PRIVATE, "publish", _T.MARKETPLACE): _S.MARKETPLACE,
    (_S.PRIVATE, "publish", _T.COMMUNITY): _S.COMMUNITY,
    (_S.PRIVATE, "unpublish", _T.MARKETPLACE): _S.PRIVATE,
    (_S.PRIVATE, "unpublish", _T.COMMUNITY): _S.PRIVATE,
    (_S.MARKETPLACE, "publish", _T.MARKETPLACE): _S.MARKETPLACE,
    (_S.MARKETPLACE, "publish", _T.COMMUNITY): _S.BOTH,
    (_S.MARKETPLACE, "unpublish", _T.MARKETPLACE): _S.PRIVATE,
    (_S.MARKETPLACE, "unpublish", _T.COMMUNITY): _S.MARKETPLACE,
    (_S.COMMUNITY, "publish", _T.MARKETPLACE): _S.BOTH,
    (_S.COMMUNITY, "publish", _T.COMMUNITY): _S.COMMUNITY,
    (_S.COMMUNITY, "unpublish", _T.MARKETPLACE): _S.COMMUNITY,
    (_S.COMMUNITY, "unpublish", _T.COMMUNITY): _S.PRIVATE,
    (_S.BOTH, "publish", _T.MARKETPLACE): _S.BOTH,
    (_S.BOTH, "publish", _T.COMMUNITY): _S.BOTH,
    (_S.BOTH, "unpublish", _T.MARKETPLACE): _S.COMMUNITY,
    (_S.BOTH, "unpublish", _T.COMMUNITY): _S.MARKETPLACE,
}


def parse_target(raw) -> PublicationTarget:
    if isinstance(raw, PublicationTarget):
        return raw
    try:
        return PublicationTarget(raw)
    except ValueError:
        allowed = ", ".join(t.value for t in PublicationTarget)
        raise ValidationError("target", f"Unsupported target {raw!r}; expected one of {allowed}") from None
