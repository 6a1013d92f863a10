"""
Live auction subsystem.

This package owns the auction state (players, teams, pools, the auction
log and the live session) and the transaction engine that is its only
writer, plus the HTTP API and viewer client built on top of it.
"""

from .errors import (
    AuctionError,
    BudgetExceededError,
    ConflictError,
    InvalidTransitionError,
    LockedFieldError,
    NotFoundError,
    PoolNotEmptyError,
    StaleBidError,
)
from .models import AuctionLogEntry, Player, PlayerRole, PlayerStatus, Pool, Team
from .session import AuctionSession, SessionState
from .ledgers import AuctionState
from .log_store import AuctionLogStore
from .transaction_engine import AuctionTransactionEngine

__all__ = [
    'AuctionError',
    'BudgetExceededError',
    'ConflictError',
    'InvalidTransitionError',
    'LockedFieldError',
    'NotFoundError',
    'PoolNotEmptyError',
    'StaleBidError',
    'AuctionLogEntry',
    'Player',
    'PlayerRole',
    'PlayerStatus',
    'Pool',
    'Team',
    'AuctionSession',
    'SessionState',
    'AuctionState',
    'AuctionLogStore',
    'AuctionTransactionEngine',
]
