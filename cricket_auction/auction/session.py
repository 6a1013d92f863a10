"""
Bidding state for a single player's auction.

A session moves Open -> Sold or Open -> Unsold and is immutable afterwards.
It knows nothing about budgets; the transaction engine checks those before
recording a bid and owns the commit that closes a session as Sold.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .errors import InvalidTransitionError, StaleBidError
from .models import new_id

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    OPEN = 'Open'
    SOLD = 'Sold'
    UNSOLD = 'Unsold'


@dataclass(frozen=True)
class BidRecord:
    """An accepted bid."""

    team_id: str
    amount: int
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            'team_id': self.team_id,
            'amount': self.amount,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BidRecord':
        return cls(
            team_id=data['team_id'],
            amount=int(data['amount']),
            timestamp=datetime.fromisoformat(data['timestamp']),
        )


@dataclass
class AuctionSession:
    """Live auction for one player."""

    session_id: str
    player_id: str
    base_price: int
    current_bid: int
    leading_team_id: Optional[str] = None
    state: SessionState = SessionState.OPEN
    final_price: Optional[int] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    bids: List[BidRecord] = field(default_factory=list)

    @classmethod
    def open(cls, player_id: str, base_price: int) -> 'AuctionSession':
        """Open a session with the bid at the player's base price."""
        return cls(
            session_id=new_id(),
            player_id=player_id,
            base_price=base_price,
            current_bid=base_price,
        )

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.OPEN

    @property
    def is_completed(self) -> bool:
        return self.state != SessionState.OPEN

    def _require_open(self, action: str) -> None:
        if not self.is_active:
            raise InvalidTransitionError(
                f"Cannot {action}: session {self.session_id} is already {self.state.value}"
            )

    def check_bid(self, amount: int) -> None:
        """
        Check that a bid would be accepted, without recording it.

        Every bid, the first included, must be strictly higher than the
        current bid. A session opens at the base price, so no bid can match
        or undercut it.

        Args:
            amount: Proposed bid in lakhs

        Raises:
            InvalidTransitionError: If the session is closed
            StaleBidError: If the bid does not beat the current bid
        """
        self._require_open('bid')

        if amount <= self.current_bid:
            raise StaleBidError(amount, self.current_bid)

    def record_bid(self, team_id: str, amount: int) -> BidRecord:
        """
        Record an accepted bid.

        Args:
            team_id: Bidding team
            amount: Bid in lakhs

        Returns:
            The recorded BidRecord
        """
        self.check_bid(amount)

        bid = BidRecord(team_id=team_id, amount=amount, timestamp=datetime.now())
        self.bids.append(bid)
        self.current_bid = amount
        self.leading_team_id = team_id

        logger.debug(f"Session {self.session_id}: {team_id} leads at {amount}L")
        return bid

    def check_can_finalize(self) -> None:
        """
        Raises:
            InvalidTransitionError: If the session is closed or has no leader
        """
        self._require_open('finalize')
        if self.leading_team_id is None:
            raise InvalidTransitionError(
                f"Cannot finalize session {self.session_id}: no team has bid"
            )

    def close_sold(self, completed_at: Optional[datetime] = None) -> None:
        """Close the session as Sold at the current bid."""
        self.check_can_finalize()
        self.state = SessionState.SOLD
        self.final_price = self.current_bid
        self.completed_at = completed_at or datetime.now()

    def close_unsold(self, completed_at: Optional[datetime] = None) -> None:
        """Close the session as Unsold."""
        self._require_open('mark unsold')
        self.state = SessionState.UNSOLD
        self.completed_at = completed_at or datetime.now()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'session_id': self.session_id,
            'player_id': self.player_id,
            'base_price': self.base_price,
            'current_bid': self.current_bid,
            'leading_team_id': self.leading_team_id,
            'state': self.state.value,
            'is_active': self.is_active,
            'is_completed': self.is_completed,
            'final_price': self.final_price,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'bids': [bid.to_dict() for bid in self.bids],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AuctionSession':
        """Create AuctionSession from dictionary."""
        completed_at = data.get('completed_at')
        return cls(
            session_id=data['session_id'],
            player_id=data['player_id'],
            base_price=int(data['base_price']),
            current_bid=int(data['current_bid']),
            leading_team_id=data.get('leading_team_id'),
            state=SessionState(data.get('state', SessionState.OPEN.value)),
            final_price=data.get('final_price'),
            started_at=datetime.fromisoformat(data['started_at']),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            bids=[BidRecord.from_dict(b) for b in data.get('bids', [])],
        )
