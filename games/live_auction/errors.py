"""
Error taxonomy for the live auction engine.

Session methods raise these; the registry and the WebSocket manager catch
AuctionError at the boundary and degrade it to "ignore the action" (or to an
explicit rejection event where the protocol defines one).
"""


class AuctionError(Exception):
    """Base class for every per-session error."""


class InvalidSession(AuctionError):
    """Unknown room code, or a participant that is not a member of the room."""


class IneligibleAction(AuctionError):
    """Stale bid, acting after declining, acting out of phase, etc."""


class CapacityViolation(AuctionError):
    """Roster cap, overseas cap or purse would be exceeded."""


class MalformedIncrement(AuctionError):
    """Bid amount does not match the required next increment."""

    def __init__(self, amount: int, expected: int):
        super().__init__(f"bid of {amount} does not match required increment {expected}")
        self.amount = amount
        self.expected = expected


class ResourceExhaustion(AuctionError):
    """The item catalog could not be loaded, so the session cannot start."""
