"""
Player registry, team ledger and pool index.

The ledgers hold the authoritative records. Methods prefixed with an
underscore write fields the transaction engine owns (player status, sale
fields, remaining budget, pool membership); only the engine calls them,
from inside its critical section.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional
import json

from .errors import BudgetExceededError, NotFoundError
from .models import AuctionLogEntry, Player, PlayerStatus, Pool, Team
from .session import AuctionSession

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Player records keyed by player_id."""

    def __init__(self, players: Optional[Dict[str, Player]] = None):
        self._players: Dict[str, Player] = dict(players or {})

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Player]:
        return iter(self._players.values())

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._players

    def get(self, player_id: str) -> Player:
        """
        Raises:
            NotFoundError: If the player does not exist
        """
        try:
            return self._players[player_id]
        except KeyError:
            raise NotFoundError(f"Player not found: {player_id}") from None

    def all(self) -> List[Player]:
        return list(self._players.values())

    def find_by_name(self, name: str) -> Optional[Player]:
        """Case-insensitive exact name lookup."""
        wanted = name.strip().lower()
        for player in self._players.values():
            if player.name.strip().lower() == wanted:
                return player
        return None

    def with_status(self, *statuses: PlayerStatus) -> List[Player]:
        return [p for p in self._players.values() if p.status in statuses]

    def sold_to(self, team_id: str) -> List[Player]:
        return [
            p for p in self._players.values()
            if p.status == PlayerStatus.SOLD and p.assigned_team == team_id
        ]

    def add(self, player: Player) -> None:
        if player.player_id in self._players:
            raise ValueError(f"Duplicate player_id: {player.player_id}")
        self._players[player.player_id] = player

    def remove(self, player_id: str) -> Player:
        player = self.get(player_id)
        del self._players[player_id]
        return player

    def _record_sale(self, player_id: str, team_id: str, price: int) -> None:
        player = self.get(player_id)
        player.status = PlayerStatus.SOLD
        player.sold_price = price
        player.assigned_team = team_id

    def _record_unsold(self, player_id: str) -> None:
        self.get(player_id).status = PlayerStatus.UNSOLD

    def _set_pool(self, player_id: str, pool_name: Optional[str]) -> None:
        player = self.get(player_id)
        player.pool = pool_name
        if pool_name is not None and player.status == PlayerStatus.AVAILABLE:
            player.status = PlayerStatus.POOLED
        elif pool_name is None and player.status == PlayerStatus.POOLED:
            player.status = PlayerStatus.AVAILABLE

    def _restore(self, snapshot: Player) -> None:
        self._players[snapshot.player_id] = snapshot


class TeamLedger:
    """Team budgets keyed by team_id."""

    def __init__(self, teams: Optional[Dict[str, Team]] = None):
        self._teams: Dict[str, Team] = dict(teams or {})

    def __len__(self) -> int:
        return len(self._teams)

    def __iter__(self) -> Iterator[Team]:
        return iter(self._teams.values())

    def __contains__(self, team_id: str) -> bool:
        return team_id in self._teams

    def get(self, team_id: str) -> Team:
        """
        Raises:
            NotFoundError: If the team does not exist
        """
        try:
            return self._teams[team_id]
        except KeyError:
            raise NotFoundError(f"Team not found: {team_id}") from None

    def all(self) -> List[Team]:
        return list(self._teams.values())

    def find_by_name(self, name: str) -> Optional[Team]:
        wanted = name.strip().lower()
        for team in self._teams.values():
            if team.name.strip().lower() == wanted:
                return team
        return None

    def add(self, team: Team) -> None:
        if team.team_id in self._teams:
            raise ValueError(f"Duplicate team_id: {team.team_id}")
        self._teams[team.team_id] = team

    def remove(self, team_id: str) -> Team:
        team = self.get(team_id)
        del self._teams[team_id]
        return team

    def total_budget(self) -> int:
        return sum(t.budget for t in self._teams.values())

    def _debit(self, team_id: str, amount: int) -> None:
        """
        Deduct a sale from a team's remaining budget.

        Raises:
            BudgetExceededError: If the remaining budget does not cover it
        """
        team = self.get(team_id)
        if not team.can_afford(amount):
            raise BudgetExceededError(team_id, amount, team.remaining_budget)
        team.remaining_budget -= amount

    def _reset_budget(self, team_id: str, budget: int) -> None:
        team = self.get(team_id)
        team.budget = budget
        team.remaining_budget = budget

    def _restore(self, snapshot: Team) -> None:
        self._teams[snapshot.team_id] = snapshot


class PoolIndex:
    """Pools keyed by name."""

    def __init__(self, pools: Optional[Dict[str, Pool]] = None):
        self._pools: Dict[str, Pool] = dict(pools or {})

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[Pool]:
        return iter(self._pools.values())

    def __contains__(self, name: str) -> bool:
        return name in self._pools

    def get(self, name: str) -> Pool:
        """
        Raises:
            NotFoundError: If the pool does not exist
        """
        try:
            return self._pools[name]
        except KeyError:
            raise NotFoundError(f"Pool not found: {name}") from None

    def all(self) -> List[Pool]:
        return list(self._pools.values())

    def pool_of(self, player_id: str) -> Optional[Pool]:
        for pool in self._pools.values():
            if player_id in pool.player_ids:
                return pool
        return None

    def add(self, pool: Pool) -> None:
        if pool.name in self._pools:
            raise ValueError(f"Pool '{pool.name}' already exists")
        self._pools[pool.name] = pool

    def remove(self, name: str) -> Pool:
        pool = self.get(name)
        del self._pools[name]
        return pool

    def _add_member(self, name: str, player_id: str) -> None:
        pool = self.get(name)
        if player_id not in pool.player_ids:
            pool.player_ids.append(player_id)

    def _remove_member(self, name: str, player_id: str) -> None:
        pool = self.get(name)
        if player_id in pool.player_ids:
            pool.player_ids.remove(player_id)


@dataclass
class AuctionState:
    """Complete state of the auction."""

    players: PlayerRegistry = field(default_factory=PlayerRegistry)
    teams: TeamLedger = field(default_factory=TeamLedger)
    pools: PoolIndex = field(default_factory=PoolIndex)
    auction_log: List[AuctionLogEntry] = field(default_factory=list)
    current_session: Optional[AuctionSession] = None
    session_history: List[AuctionSession] = field(default_factory=list)

    @property
    def active_session(self) -> Optional[AuctionSession]:
        if self.current_session is not None and self.current_session.is_active:
            return self.current_session
        return None

    def validate(self) -> None:
        """
        Validate cross-record consistency.

        Raises:
            ValueError: If state is inconsistent
        """
        # Budget tracking: remaining == budget - committed sales
        for team in self.teams:
            spent = sum(p.sold_price for p in self.players.sold_to(team.team_id))
            if team.remaining_budget != team.budget - spent:
                raise ValueError(
                    f"Budget mismatch for {team.name}: remaining {team.remaining_budget}L, "
                    f"expected {team.budget - spent}L"
                )
            if team.remaining_budget < 0:
                raise ValueError(f"Negative remaining budget for {team.name}")

        # Sale fields present exactly on sold players
        for player in self.players:
            if player.status == PlayerStatus.SOLD:
                if player.sold_price is None or player.assigned_team not in self.teams:
                    raise ValueError(f"Sold player {player.name} has no valid sale record")
            elif player.sold_price is not None or player.assigned_team is not None:
                raise ValueError(f"Unsold player {player.name} carries sale fields")

        # Auction log agrees with the registry, one entry per sold player
        logged = {}
        for entry in self.auction_log:
            if entry.player_id in logged:
                raise ValueError(f"Player {entry.player_id} sold more than once")
            logged[entry.player_id] = entry

        sold = {p.player_id: p for p in self.players.with_status(PlayerStatus.SOLD)}
        if set(logged) != set(sold):
            raise ValueError("Auction log does not match sold players")
        for player_id, entry in logged.items():
            player = sold[player_id]
            if entry.team_id != player.assigned_team or entry.sold_price != player.sold_price:
                raise ValueError(f"Auction log disagrees with player {player.name}")

        # Each player in at most one pool, matching the player's own field
        seen = {}
        for pool in self.pools:
            for player_id in pool.player_ids:
                if player_id in seen:
                    raise ValueError(
                        f"Player {player_id} is in pools '{seen[player_id]}' and '{pool.name}'"
                    )
                seen[player_id] = pool.name
                if player_id not in self.players or self.players.get(player_id).pool != pool.name:
                    raise ValueError(f"Pool '{pool.name}' lists player {player_id} incorrectly")
        for player in self.players:
            if player.pool is not None and seen.get(player.player_id) != player.pool:
                raise ValueError(f"Player {player.name} points at pool '{player.pool}' without membership")

        # Single live session
        if self.current_session is not None and not self.current_session.is_active:
            raise ValueError("Current session is closed but still marked current")
        if any(s.is_active for s in self.session_history):
            raise ValueError("Session history contains an open session")

    def copy(self) -> 'AuctionState':
        """Independent deep copy, via the serialized form."""
        return AuctionState.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'players': [p.to_dict() for p in self.players],
            'teams': [t.to_dict() for t in self.teams],
            'pools': [p.to_dict() for p in self.pools],
            'auction_log': [e.to_dict() for e in self.auction_log],
            'current_session': self.current_session.to_dict() if self.current_session else None,
            'session_history': [s.to_dict() for s in self.session_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AuctionState':
        """Create AuctionState from dictionary."""
        players = {p['player_id']: Player.from_dict(p) for p in data.get('players', [])}
        teams = {t['team_id']: Team.from_dict(t) for t in data.get('teams', [])}
        pools = {p['name']: Pool.from_dict(p) for p in data.get('pools', [])}
        current = data.get('current_session')
        return cls(
            players=PlayerRegistry(players),
            teams=TeamLedger(teams),
            pools=PoolIndex(pools),
            auction_log=[AuctionLogEntry.from_dict(e) for e in data.get('auction_log', [])],
            current_session=AuctionSession.from_dict(current) if current else None,
            session_history=[AuctionSession.from_dict(s) for s in data.get('session_history', [])],
        )

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'AuctionState':
        """Create AuctionState from JSON string."""
        return cls.from_dict(json.loads(json_str))


def snapshot_player(player: Player) -> Player:
    """Shallow copy used to roll back a failed commit."""
    return replace(player)


def snapshot_team(team: Team) -> Team:
    """Shallow copy used to roll back a failed commit."""
    return replace(team)
