"""
Core records for the player auction.

These dataclasses are the persisted surface of the auction: players, teams,
pools and the append-only auction log. Amounts are integer lakhs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
import json
import uuid


class PlayerRole(str, Enum):
    BATSMAN = 'Batsman'
    BOWLER = 'Bowler'
    ALL_ROUNDER = 'All-rounder'
    WICKET_KEEPER = 'Wicket-keeper'


class PlayerStatus(str, Enum):
    AVAILABLE = 'Available'
    POOLED = 'Pooled'
    SOLD = 'Sold'
    UNSOLD = 'Unsold'


class PoolStatus(str, Enum):
    READY = 'Ready'
    HIDDEN = 'Hidden'
    ACTIVE = 'Active'
    LOCKED = 'Locked'
    COMPLETED = 'Completed'


class PoolVisibility(str, Enum):
    PUBLIC = 'Public'
    PRIVATE = 'Private'


# Statuses from which a player can be put up for auction
AUCTIONABLE_STATUSES = (PlayerStatus.AVAILABLE, PlayerStatus.POOLED, PlayerStatus.UNSOLD)


def new_id() -> str:
    """Generate a record identifier."""
    return uuid.uuid4().hex


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Player:
    """A player on the auction roster."""

    player_id: str
    name: str
    role: PlayerRole
    country: str
    base_price: int                         # Lakhs
    age: int = 0
    evaluation_points: int = 0
    pool: Optional[str] = None              # Pool name
    status: PlayerStatus = PlayerStatus.AVAILABLE
    sold_price: Optional[int] = None        # Set by the engine on sale
    assigned_team: Optional[str] = None     # team_id, set by the engine on sale
    bio: Optional[str] = None
    performance_stats: Optional[str] = None  # Opaque string from import
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_sold(self) -> bool:
        return self.status == PlayerStatus.SOLD

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'player_id': self.player_id,
            'name': self.name,
            'role': self.role.value,
            'country': self.country,
            'base_price': self.base_price,
            'age': self.age,
            'evaluation_points': self.evaluation_points,
            'pool': self.pool,
            'status': self.status.value,
            'sold_price': self.sold_price,
            'assigned_team': self.assigned_team,
            'bio': self.bio,
            'performance_stats': self.performance_stats,
            'created_at': _format_time(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Player':
        """Create Player from dictionary."""
        return cls(
            player_id=data['player_id'],
            name=data['name'],
            role=PlayerRole(data['role']),
            country=data.get('country', ''),
            base_price=int(data['base_price']),
            age=int(data.get('age', 0)),
            evaluation_points=int(data.get('evaluation_points', 0)),
            pool=data.get('pool'),
            status=PlayerStatus(data.get('status', PlayerStatus.AVAILABLE.value)),
            sold_price=data.get('sold_price'),
            assigned_team=data.get('assigned_team'),
            bio=data.get('bio'),
            performance_stats=data.get('performance_stats'),
            created_at=_parse_time(data.get('created_at')) or datetime.now(),
        )


@dataclass
class Team:
    """A bidding team and its budget."""

    team_id: str
    name: str
    budget: int                              # Total budget in lakhs, fixed once sales begin
    remaining_budget: Optional[int] = None   # Defaults to the full budget
    color_theme: str = '#1E40AF'
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.remaining_budget is None:
            self.remaining_budget = self.budget

    def can_afford(self, amount: int) -> bool:
        """Whether the team's remaining budget covers an amount."""
        return self.remaining_budget >= amount

    def total_spent(self) -> int:
        """Total committed spend so far."""
        return self.budget - self.remaining_budget

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'team_id': self.team_id,
            'name': self.name,
            'budget': self.budget,
            'remaining_budget': self.remaining_budget,
            'color_theme': self.color_theme,
            'created_at': _format_time(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Team':
        """Create Team from dictionary."""
        return cls(
            team_id=data['team_id'],
            name=data['name'],
            budget=int(data['budget']),
            remaining_budget=data.get('remaining_budget'),
            color_theme=data.get('color_theme', '#1E40AF'),
            created_at=_parse_time(data.get('created_at')) or datetime.now(),
        )


@dataclass
class Pool:
    """A named, ordered group of players used to sequence auctions."""

    pool_id: str
    name: str
    player_ids: List[str] = field(default_factory=list)
    status: PoolStatus = PoolStatus.READY
    visibility: PoolVisibility = PoolVisibility.PUBLIC
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_editable(self) -> bool:
        """Locked and completed pools keep their membership and order."""
        return self.status not in (PoolStatus.LOCKED, PoolStatus.COMPLETED)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'pool_id': self.pool_id,
            'name': self.name,
            'player_ids': list(self.player_ids),
            'status': self.status.value,
            'visibility': self.visibility.value,
            'created_at': _format_time(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Pool':
        """Create Pool from dictionary."""
        return cls(
            pool_id=data['pool_id'],
            name=data['name'],
            player_ids=list(data.get('player_ids', [])),
            status=PoolStatus(data.get('status', PoolStatus.READY.value)),
            visibility=PoolVisibility(data.get('visibility', PoolVisibility.PUBLIC.value)),
            created_at=_parse_time(data.get('created_at')) or datetime.now(),
        )


@dataclass(frozen=True)
class AuctionLogEntry:
    """One completed sale. Entries are never edited once written."""

    log_id: str
    player_id: str
    team_id: str
    sold_price: int
    timestamp: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'log_id': self.log_id,
            'player_id': self.player_id,
            'team_id': self.team_id,
            'sold_price': self.sold_price,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AuctionLogEntry':
        """Create AuctionLogEntry from dictionary (JSON deserialization)."""
        return cls(
            log_id=data['log_id'],
            player_id=data['player_id'],
            team_id=data['team_id'],
            sold_price=int(data['sold_price']),
            timestamp=datetime.fromisoformat(data['timestamp']),
        )

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> 'AuctionLogEntry':
        """Create AuctionLogEntry from JSON string."""
        return cls.from_dict(json.loads(json_str))
