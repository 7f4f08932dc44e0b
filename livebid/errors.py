"""Error taxonomy shared by the auction coordination layers."""

from __future__ import annotations


class AuctionError(Exception):
    """Base class for auction coordination failures."""


class StoreUnavailable(AuctionError):
    """Raised when the shared state store cannot be reached."""


class BusUnavailable(AuctionError):
    """Raised when the update channel cannot publish or subscribe."""


class PersistenceFailure(AuctionError):
    """Raised by bid sinks when a write could not be made durable."""


class InvalidBid(AuctionError, ValueError):
    """Raised when a bid request cannot be interpreted."""


class ProtocolError(AuctionError, ValueError):
    """Raised when an inbound viewer message is malformed."""
