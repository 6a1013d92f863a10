"""
Error kinds raised by the auction engine.

Every rejected action raises a subclass of AuctionError so callers (the API
server, the CLI) can map them to responses without inspecting messages.
"""


class AuctionError(Exception):
    """Base class for auction-specific errors."""


class ConflictError(AuctionError):
    """Another auction session is already open."""


class BudgetExceededError(AuctionError):
    """A team cannot cover a bid or a sale."""

    def __init__(self, team_id: str, amount: int, remaining_budget: int):
        self.team_id = team_id
        self.amount = amount
        self.remaining_budget = remaining_budget
        super().__init__(
            f"Team {team_id} cannot cover {amount}L "
            f"(remaining budget {remaining_budget}L)"
        )


class StaleBidError(AuctionError):
    """A bid did not beat the session's current bid."""

    def __init__(self, amount: int, current_bid: int):
        self.amount = amount
        self.current_bid = current_bid
        super().__init__(
            f"Bid of {amount}L does not beat current bid of {current_bid}L"
        )


class InvalidTransitionError(AuctionError):
    """The requested operation is not allowed in the current state."""


class PoolNotEmptyError(AuctionError):
    """A pool still holds players and cannot be deleted."""

    def __init__(self, pool_name: str, player_count: int):
        self.pool_name = pool_name
        self.player_count = player_count
        super().__init__(
            f"Pool '{pool_name}' still has {player_count} player(s); "
            f"move them to another pool before deleting it"
        )


class LockedFieldError(AuctionError):
    """A write touched a field owned by the engine, or a frozen field."""


class NotFoundError(AuctionError):
    """An id or name does not refer to a known record."""
