"""
Action Errors

Every rejected action raises one of these. The room service converts them
into the ``{'ok': False, 'error': ...}`` acknowledgement sent to the caller.
"""

# User-facing error messages
NOT_FOUND = "not found"
NAME_TAKEN = "name taken"
ROOM_FULL = "full"
ALREADY_STARTED = "already started"
NOT_ENOUGH_PLAYERS = "<3 players"
NOT_ENOUGH_READY = "not enough ready"
NOT_YOUR_TURN = "not your turn"
ALREADY_VOTED = "already voted"
INVALID_TARGET = "invalid target"
VOTING_ONLY = "voting-only"
RATE_LIMITED = "rate limited"
HOST_ONLY = "host only"
WRONG_PHASE = "wrong phase"
NAME_REQUIRED = "name required"
NAME_TOO_LONG = "name too long"
INVALID_CODE = "invalid code"
INVALID_SETTINGS = "invalid settings"
INVALID_PAYLOAD = "invalid payload"
REJOIN_EXPIRED = "rejoin expired"
NO_REJOIN_SLOT = "no rejoin slot"
NOT_IN_ROOM = "not in room"
EMPTY_HINT = "empty hint"
EMPTY_MESSAGE = "empty message"
ELIMINATED = "eliminated"
INTERNAL_ERROR = "internal error"


class ActionRejected(Exception):
    """Base class for a rejected action. Nothing has been mutated."""

    kind = "rejected"

    def __init__(self, message: str, detail: str = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_ack(self) -> dict:
        ack = {'ok': False, 'error': self.message}
        if self.detail:
            ack['detail'] = self.detail
        return ack


class ValidationError(ActionRejected):
    """Malformed input: missing name, wrong code length, bad settings."""
    kind = "validation"


class AuthorizationError(ActionRejected):
    """A non-host invoked a host-only action."""
    kind = "authorization"


class PhaseError(ActionRejected):
    """The action is only valid in a different phase or turn."""
    kind = "phase"


class ConflictError(ActionRejected):
    """Capacity or uniqueness conflict (room full, name taken, duplicate vote)."""
    kind = "conflict"


class NotFoundError(ActionRejected):
    """Unknown room code, missing membership or expired rejoin slot."""
    kind = "not_found"


class RateLimitError(ActionRejected):
    kind = "rate_limit"
