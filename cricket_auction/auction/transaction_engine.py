"""
Auction transaction engine.

The AuctionTransactionEngine is the only writer of player status, sale
fields, team remaining budgets and the auction log. It is responsible for:
- Running the single live auction session (start, bid, finalize, unsold)
- Enforcing budgets at bid time and again at commit time
- Committing a sale to the player, the team and the log as one unit
- Admin edits to players, teams and pools, with engine-owned fields locked
- Checkpointing state and replaying the durable log after a restart

Every public method takes the engine lock, so request handlers running on
different threads see operations applied one at a time in arrival order.
"""

import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from .. import config
from .errors import (
    BudgetExceededError,
    ConflictError,
    InvalidTransitionError,
    LockedFieldError,
    NotFoundError,
    PoolNotEmptyError,
)
from .ledgers import AuctionState, snapshot_player, snapshot_team
from .log_store import AuctionLogStore
from .models import (
    AUCTIONABLE_STATUSES,
    AuctionLogEntry,
    Player,
    PlayerRole,
    PlayerStatus,
    Pool,
    PoolStatus,
    PoolVisibility,
    Team,
    new_id,
)
from .session import AuctionSession

logger = logging.getLogger(__name__)

# Fields only the engine writes once a record exists
ENGINE_OWNED_PLAYER_FIELDS = {'player_id', 'status', 'sold_price', 'assigned_team', 'created_at'}
ENGINE_OWNED_TEAM_FIELDS = {'team_id', 'remaining_budget', 'created_at'}

EDITABLE_PLAYER_FIELDS = {
    'name', 'role', 'country', 'base_price', 'age', 'evaluation_points',
    'bio', 'performance_stats', 'pool',
}
EDITABLE_TEAM_FIELDS = {'name', 'color_theme', 'budget'}

_COLOR_PATTERN = re.compile(r'^#[0-9A-Fa-f]{6}$')


class AuctionTransactionEngine:
    """Owns the auction state and every transition on it."""

    def __init__(
        self,
        state: Optional[AuctionState] = None,
        log_store: Optional[AuctionLogStore] = None,
        checkpoint_path: Optional[Path] = None
    ):
        """
        Initialize the engine.

        Args:
            state: Starting state (fresh if None)
            log_store: Durable auction log; sales are appended here on commit
            checkpoint_path: JSON file rewritten after every change (optional)
        """
        self.state = state or AuctionState()
        self.log_store = log_store
        self.checkpoint_path = Path(checkpoint_path) if checkpoint_path else None
        self._lock = threading.RLock()

    # ===== Construction / persistence =====

    @classmethod
    def open(cls, data_dir: Path) -> 'AuctionTransactionEngine':
        """
        Open (or create) a persistent auction in a data directory.

        Loads the checkpoint if present and replays any sales from the
        durable log that the checkpoint does not yet reflect.

        Args:
            data_dir: Directory holding the checkpoint and the auction log

        Returns:
            AuctionTransactionEngine bound to the directory
        """
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)

        checkpoint_path = data_dir / config.CHECKPOINT_FILENAME
        log_store = AuctionLogStore(data_dir / config.AUCTION_LOG_FILENAME)

        if checkpoint_path.exists():
            state = cls._read_checkpoint(checkpoint_path)
        else:
            logger.info(f"Starting fresh auction in {data_dir}")
            state = AuctionState()

        engine = cls(state=state, log_store=log_store, checkpoint_path=checkpoint_path)
        replayed = engine.replay_missing_sales(log_store.load_all_entries())
        if replayed:
            engine.save_checkpoint()

        return engine

    @staticmethod
    def _read_checkpoint(filepath: Path) -> AuctionState:
        with open(filepath, 'r', encoding='utf-8') as f:
            checkpoint_data = json.load(f)

        state = AuctionState.from_dict(checkpoint_data['state'])
        logger.info(
            f"Loaded checkpoint: {len(state.players)} players, {len(state.teams)} teams, "
            f"{len(state.auction_log)} sales <- {filepath}"
        )
        return state

    def replay_missing_sales(self, entries: List[AuctionLogEntry]) -> int:
        """
        Apply logged sales that the in-memory state does not contain.

        Args:
            entries: Entries from the durable log, in write order

        Returns:
            Number of sales replayed

        Raises:
            ValueError: If a logged sale conflicts with the current records
        """
        with self._lock:
            known = {e.log_id for e in self.state.auction_log}
            replayed = 0

            for entry in entries:
                if entry.log_id in known:
                    continue

                player = self.state.players.get(entry.player_id)
                if player.is_sold:
                    raise ValueError(
                        f"Logged sale {entry.log_id} conflicts with existing sale of {player.name}"
                    )

                self.state.players._record_sale(entry.player_id, entry.team_id, entry.sold_price)
                self.state.teams._debit(entry.team_id, entry.sold_price)
                self.state.auction_log.append(entry)

                session = self.state.current_session
                if session is not None and session.player_id == entry.player_id:
                    session.close_sold(entry.timestamp)
                    self.state.session_history.append(session)
                    self.state.current_session = None

                known.add(entry.log_id)
                replayed += 1

            if replayed:
                logger.warning(f"Replayed {replayed} sale(s) missing from checkpoint")

            self.state.validate()
            return replayed

    def save_checkpoint(self, filepath: Optional[Path] = None) -> Path:
        """
        Save current state to JSON.

        Args:
            filepath: Target file (defaults to the engine's checkpoint path)

        Returns:
            Path written

        Raises:
            ValueError: If no path is configured or given
        """
        filepath = Path(filepath) if filepath else self.checkpoint_path
        if filepath is None:
            raise ValueError("No checkpoint path configured")

        with self._lock:
            checkpoint_data = {
                'state': self.state.to_dict(),
                'sales': len(self.state.auction_log),
                'checkpoint_time': datetime.now().isoformat()
            }

        filepath.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file, then rename
        temp_path = filepath.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(checkpoint_data, f, indent=2)

        temp_path.replace(filepath)

        logger.debug(f"Saved checkpoint: {checkpoint_data['sales']} sales -> {filepath}")
        return filepath

    def _persist(self) -> None:
        """Rewrite the checkpoint after a change, if one is configured."""
        if self.checkpoint_path is None:
            return
        try:
            self.save_checkpoint()
        except OSError as e:
            # Sales are already durable in the log and get replayed on restart
            logger.error(f"Failed to write checkpoint {self.checkpoint_path}: {e}", exc_info=True)

    def snapshot(self) -> AuctionState:
        """Consistent copy of the state for read-only consumers."""
        with self._lock:
            return self.state.copy()

    # ===== Auction lifecycle =====

    @property
    def current_session(self) -> Optional[AuctionSession]:
        return self.state.active_session

    def get_session(self, session_id: str) -> AuctionSession:
        """
        Look up a session, live or completed.

        Raises:
            NotFoundError: If the session does not exist
        """
        with self._lock:
            current = self.state.current_session
            if current is not None and current.session_id == session_id:
                return current
            for session in self.state.session_history:
                if session.session_id == session_id:
                    return session
        raise NotFoundError(f"Session not found: {session_id}")

    def _require_open_session(self, session_id: str, action: str) -> AuctionSession:
        session = self.get_session(session_id)
        if not session.is_active:
            raise InvalidTransitionError(
                f"Cannot {action}: session {session_id} is already {session.state.value}"
            )
        return session

    def start_auction(self, player_id: str) -> AuctionSession:
        """
        Open the auction for a player.

        Args:
            player_id: Player to put up for auction

        Returns:
            The new open AuctionSession

        Raises:
            ConflictError: If another session is open
            NotFoundError: If the player does not exist
            InvalidTransitionError: If the player is already sold
        """
        with self._lock:
            active = self.state.active_session
            if active is not None:
                raise ConflictError(
                    f"Auction for player {active.player_id} is still open "
                    f"(session {active.session_id})"
                )

            player = self.state.players.get(player_id)
            if player.status not in AUCTIONABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot auction {player.name}: status is {player.status.value}"
                )

            session = AuctionSession.open(player.player_id, player.base_price)
            self.state.current_session = session

            logger.info(
                f"Auction started for {player.name} at base price {player.base_price}L "
                f"(session {session.session_id})"
            )
            self._persist()
            return session

    def place_bid(self, session_id: str, team_id: str, amount: int) -> AuctionSession:
        """
        Record a bid on the open session.

        Args:
            session_id: Open session
            team_id: Bidding team
            amount: New bid in lakhs, computed by the caller

        Returns:
            The session after the bid

        Raises:
            InvalidTransitionError: If the session is closed
            StaleBidError: If the bid does not beat the current bid
            BudgetExceededError: If the team cannot cover the bid
            NotFoundError: If the session or team does not exist
        """
        with self._lock:
            session = self._require_open_session(session_id, 'bid')
            team = self.state.teams.get(team_id)

            session.check_bid(amount)
            if not team.can_afford(amount):
                raise BudgetExceededError(team_id, amount, team.remaining_budget)

            session.record_bid(team_id, amount)

            logger.debug(f"Bid accepted: {team.name} {amount}L on session {session_id}")
            self._persist()
            return session

    def finalize(self, session_id: str) -> AuctionLogEntry:
        """
        Sell the player to the leading team.

        This performs all state updates as one unit:
        1. Close the session as Sold at the current bid
        2. Mark the player Sold with price and team
        3. Deduct the price from the team's remaining budget
        4. Append the sale to the auction log

        Either all four happen or none do. The team's budget is checked
        again here; on shortfall the session stays open.

        Args:
            session_id: Open session with a leading team

        Returns:
            The new AuctionLogEntry

        Raises:
            InvalidTransitionError: If the session is closed or has no leader
            BudgetExceededError: If the team can no longer cover the price
        """
        with self._lock:
            session = self._require_open_session(session_id, 'finalize')
            session.check_can_finalize()

            player = self.state.players.get(session.player_id)
            team = self.state.teams.get(session.leading_team_id)
            price = session.current_bid

            if player.is_sold:
                raise InvalidTransitionError(f"{player.name} has already been sold")
            if not team.can_afford(price):
                logger.warning(
                    f"Finalize rejected: {team.name} has {team.remaining_budget}L, "
                    f"sale is {price}L"
                )
                raise BudgetExceededError(team.team_id, price, team.remaining_budget)

            player_before = snapshot_player(player)
            team_before = snapshot_team(team)
            session_before = (session.state, session.final_price, session.completed_at)
            now = datetime.now()
            entry = AuctionLogEntry(
                log_id=new_id(),
                player_id=player.player_id,
                team_id=team.team_id,
                sold_price=price,
                timestamp=now,
            )

            try:
                self.state.players._record_sale(player.player_id, team.team_id, price)
                self.state.teams._debit(team.team_id, price)
                session.close_sold(now)
                self.state.auction_log.append(entry)
                if self.log_store is not None:
                    self.log_store.append_entry(entry)
            except Exception:
                logger.error(f"Rolling back sale of {player.name}", exc_info=True)
                self.state.players._restore(player_before)
                self.state.teams._restore(team_before)
                session.state, session.final_price, session.completed_at = session_before
                if self.state.auction_log and self.state.auction_log[-1] is entry:
                    self.state.auction_log.pop()
                raise

            self.state.session_history.append(session)
            self.state.current_session = None

            logger.info(
                f"SOLD: {player.name} -> {team.name} for {price}L "
                f"({team.remaining_budget}L remaining)"
            )

            try:
                self.state.validate()
            except ValueError as e:
                logger.error(f"State validation failed after sale: {e}")
                raise

            self._persist()
            return entry

    def mark_unsold(self, session_id: str) -> AuctionSession:
        """
        Close the open session without a sale.

        Args:
            session_id: Open session

        Returns:
            The closed session

        Raises:
            InvalidTransitionError: If the session is closed
        """
        with self._lock:
            session = self._require_open_session(session_id, 'mark unsold')
            player = self.state.players.get(session.player_id)

            self.state.players._record_unsold(player.player_id)
            session.close_unsold()
            self.state.session_history.append(session)
            self.state.current_session = None

            logger.info(f"UNSOLD: {player.name}")
            self._persist()
            return session

    # ===== Players =====

    def _validate_player_fields(self, fields: Dict, exclude_id: Optional[str] = None) -> Dict:
        cleaned = dict(fields)

        if 'name' in cleaned:
            name = str(cleaned['name']).strip()
            if not name:
                raise ValueError("Player name is required")
            existing = self.state.players.find_by_name(name)
            if existing is not None and existing.player_id != exclude_id:
                raise ValueError(f"Player '{name}' already exists")
            cleaned['name'] = name

        if 'role' in cleaned:
            try:
                cleaned['role'] = PlayerRole(cleaned['role'])
            except ValueError:
                raise ValueError(
                    f"Invalid role '{cleaned['role']}', expected one of {config.PLAYER_ROLES}"
                ) from None

        if 'base_price' in cleaned:
            price = int(cleaned['base_price'])
            if not config.MIN_BASE_PRICE <= price <= config.MAX_BASE_PRICE:
                raise ValueError(
                    f"Base price {price}L outside {config.MIN_BASE_PRICE}-{config.MAX_BASE_PRICE}L"
                )
            cleaned['base_price'] = price

        for numeric in ('age', 'evaluation_points'):
            if numeric in cleaned:
                value = int(cleaned[numeric])
                if value < 0:
                    raise ValueError(f"{numeric} must be non-negative")
                cleaned[numeric] = value

        if 'country' in cleaned:
            cleaned['country'] = str(cleaned['country']).strip()

        return cleaned

    def add_player(
        self,
        name: str,
        role: str,
        country: str,
        base_price: int,
        age: int = 0,
        evaluation_points: int = 0,
        bio: Optional[str] = None,
        performance_stats: Optional[str] = None,
        pool: Optional[str] = None
    ) -> Player:
        """
        Add a player to the roster in status Available (Pooled if a pool is given).

        Raises:
            ValueError: On invalid fields or a duplicate name
        """
        with self._lock:
            fields = self._validate_player_fields({
                'name': name, 'role': role, 'country': country, 'base_price': base_price,
                'age': age, 'evaluation_points': evaluation_points,
            })
            if pool is not None:
                self._require_editable_pool(pool)

            player = Player(
                player_id=new_id(),
                bio=bio,
                performance_stats=performance_stats,
                **fields
            )
            self.state.players.add(player)
            if pool is not None:
                self._move_to_pool(player, pool)

            logger.info(f"Added player {player.name} ({player.role.value}, {player.base_price}L)")
            self._persist()
            return player

    def update_player(self, player_id: str, **changes) -> Player:
        """
        Edit a player's admin-owned fields.

        Raises:
            LockedFieldError: If an engine-owned field is included, or the
                base price changes on a sold or live player
            ValueError: On invalid values
        """
        with self._lock:
            locked = set(changes) & ENGINE_OWNED_PLAYER_FIELDS
            if locked:
                raise LockedFieldError(
                    f"Fields {sorted(locked)} are managed by the auction engine"
                )
            unknown = set(changes) - EDITABLE_PLAYER_FIELDS
            if unknown:
                raise ValueError(f"Unknown player fields: {sorted(unknown)}")

            player = self.state.players.get(player_id)
            active = self.state.active_session
            if 'base_price' in changes and changes['base_price'] != player.base_price:
                if player.is_sold or (active is not None and active.player_id == player_id):
                    raise LockedFieldError(
                        f"Base price of {player.name} cannot change once auctioned"
                    )

            pool_change = 'pool' in changes
            new_pool = changes.pop('pool', None)
            fields = self._validate_player_fields(changes, exclude_id=player_id)

            if pool_change and new_pool != player.pool:
                if new_pool is None:
                    self._remove_from_current_pool(player)
                else:
                    self._move_to_pool(player, new_pool)

            for key, value in fields.items():
                setattr(player, key, value)

            logger.info(f"Updated player {player.name}: {sorted(fields) + (['pool'] if pool_change else [])}")
            self._persist()
            return player

    def delete_player(self, player_id: str) -> Player:
        """
        Remove a player who has not been part of a completed sale.

        Raises:
            LockedFieldError: If the player is sold or on the block
        """
        with self._lock:
            player = self.state.players.get(player_id)
            active = self.state.active_session
            if player.is_sold:
                raise LockedFieldError(f"{player.name} has been sold and cannot be deleted")
            if active is not None and active.player_id == player_id:
                raise LockedFieldError(f"{player.name} is currently being auctioned")

            if player.pool is not None:
                self._remove_from_current_pool(player)
            self.state.players.remove(player_id)

            logger.info(f"Deleted player {player.name}")
            self._persist()
            return player

    # ===== Teams =====

    def _validate_team_fields(self, fields: Dict, exclude_id: Optional[str] = None) -> Dict:
        cleaned = dict(fields)

        if 'name' in cleaned:
            name = str(cleaned['name']).strip()
            if not 2 <= len(name) <= 50:
                raise ValueError("Team name must be 2-50 characters")
            existing = self.state.teams.find_by_name(name)
            if existing is not None and existing.team_id != exclude_id:
                raise ValueError(f"Team '{name}' already exists")
            cleaned['name'] = name

        if 'color_theme' in cleaned:
            if not _COLOR_PATTERN.match(str(cleaned['color_theme'])):
                raise ValueError(f"Invalid colour '{cleaned['color_theme']}', expected #RRGGBB")

        if 'budget' in cleaned:
            budget = int(cleaned['budget'])
            if not config.MIN_TEAM_BUDGET <= budget <= config.MAX_TEAM_BUDGET:
                raise ValueError(
                    f"Budget {budget}L outside {config.MIN_TEAM_BUDGET}-{config.MAX_TEAM_BUDGET}L"
                )
            cleaned['budget'] = budget

        return cleaned

    def create_team(
        self,
        name: str,
        budget: int = config.DEFAULT_TEAM_BUDGET,
        color_theme: str = config.DEFAULT_TEAM_COLOR
    ) -> Team:
        """
        Create a bidding team with its full budget remaining.

        Raises:
            ValueError: On invalid fields or a duplicate name
        """
        with self._lock:
            fields = self._validate_team_fields(
                {'name': name, 'budget': budget, 'color_theme': color_theme}
            )
            team = Team(team_id=new_id(), **fields)
            self.state.teams.add(team)

            logger.info(f"Created team {team.name} with budget {team.budget}L")
            self._persist()
            return team

    def update_team(self, team_id: str, **changes) -> Team:
        """
        Edit a team's name, colour or budget.

        The budget is frozen once any sale has been committed.

        Raises:
            LockedFieldError: If remaining_budget is included, or the budget
                changes after sales have begun
        """
        with self._lock:
            locked = set(changes) & ENGINE_OWNED_TEAM_FIELDS
            if locked:
                raise LockedFieldError(
                    f"Fields {sorted(locked)} are managed by the auction engine"
                )
            unknown = set(changes) - EDITABLE_TEAM_FIELDS
            if unknown:
                raise ValueError(f"Unknown team fields: {sorted(unknown)}")

            team = self.state.teams.get(team_id)
            fields = self._validate_team_fields(changes, exclude_id=team_id)

            budget = fields.pop('budget', None)
            if budget is not None and budget != team.budget:
                if self.state.auction_log:
                    raise LockedFieldError(
                        "Team budgets cannot change once players have been sold"
                    )
                self.state.teams._reset_budget(team_id, budget)

            for key, value in fields.items():
                setattr(team, key, value)

            logger.info(f"Updated team {team.name}")
            self._persist()
            return team

    def delete_team(self, team_id: str) -> Team:
        """
        Remove a team that has not bought anyone.

        Raises:
            LockedFieldError: If the team has sales or leads the live auction
        """
        with self._lock:
            team = self.state.teams.get(team_id)
            if self.state.players.sold_to(team_id):
                raise LockedFieldError(f"{team.name} has bought players and cannot be deleted")
            active = self.state.active_session
            if active is not None and active.leading_team_id == team_id:
                raise LockedFieldError(f"{team.name} leads the live auction")

            self.state.teams.remove(team_id)
            logger.info(f"Deleted team {team.name}")
            self._persist()
            return team

    # ===== Pools =====

    def _require_editable_pool(self, name: str) -> Pool:
        pool = self.state.pools.get(name)
        if not pool.is_editable:
            raise InvalidTransitionError(f"Pool '{name}' is {pool.status.value}")
        return pool

    def _remove_from_current_pool(self, player: Player) -> None:
        self._require_editable_pool(player.pool)
        self.state.pools._remove_member(player.pool, player.player_id)
        self.state.players._set_pool(player.player_id, None)

    def _move_to_pool(self, player: Player, pool_name: str) -> None:
        if player.is_sold:
            raise InvalidTransitionError(f"{player.name} has been sold")
        self._require_editable_pool(pool_name)
        if player.pool is not None:
            self._remove_from_current_pool(player)
        self.state.pools._add_member(pool_name, player.player_id)
        self.state.players._set_pool(player.player_id, pool_name)

    def create_pool(
        self,
        name: str,
        status: str = PoolStatus.READY.value,
        visibility: str = PoolVisibility.PUBLIC.value
    ) -> Pool:
        """
        Create an empty pool.

        Raises:
            ValueError: On a blank or duplicate name, or unknown status
        """
        with self._lock:
            name = name.strip()
            if not name:
                raise ValueError("Pool name is required")
            pool = Pool(
                pool_id=new_id(),
                name=name,
                status=PoolStatus(status),
                visibility=PoolVisibility(visibility),
            )
            self.state.pools.add(pool)

            logger.info(f"Created pool '{name}'")
            self._persist()
            return pool

    def delete_pool(self, name: str) -> Pool:
        """
        Delete an empty pool.

        Raises:
            PoolNotEmptyError: If players are still in the pool
        """
        with self._lock:
            pool = self.state.pools.get(name)
            if pool.player_ids:
                raise PoolNotEmptyError(name, len(pool.player_ids))

            self.state.pools.remove(name)
            logger.info(f"Deleted pool '{name}'")
            self._persist()
            return pool

    def assign_to_pool(self, player_id: str, pool_name: str) -> Player:
        """
        Move a player into a pool, leaving any previous pool.

        Raises:
            InvalidTransitionError: If the player is sold or either pool is locked
        """
        with self._lock:
            player = self.state.players.get(player_id)
            if player.pool != pool_name:
                self._move_to_pool(player, pool_name)
                logger.info(f"Moved {player.name} to pool '{pool_name}'")
                self._persist()
            return player

    def remove_from_pool(self, player_id: str) -> Player:
        """
        Take a player out of their pool.

        Raises:
            InvalidTransitionError: If the player is in no pool or the pool is locked
        """
        with self._lock:
            player = self.state.players.get(player_id)
            if player.pool is None:
                raise InvalidTransitionError(f"{player.name} is not in a pool")

            pool_name = player.pool
            self._remove_from_current_pool(player)
            logger.info(f"Removed {player.name} from pool '{pool_name}'")
            self._persist()
            return player

    def set_pool_status(self, name: str, status: str) -> Pool:
        with self._lock:
            pool = self.state.pools.get(name)
            pool.status = PoolStatus(status)
            logger.info(f"Pool '{name}' status -> {pool.status.value}")
            self._persist()
            return pool

    def set_pool_visibility(self, name: str, visibility: str) -> Pool:
        with self._lock:
            pool = self.state.pools.get(name)
            pool.visibility = PoolVisibility(visibility)
            logger.info(f"Pool '{name}' visibility -> {pool.visibility.value}")
            self._persist()
            return pool

    def shuffle_pool(self, name: str, seed: Optional[int] = None) -> Pool:
        """
        Randomly reorder a pool's players.

        Only the display/auction order changes; player records are untouched.

        Raises:
            InvalidTransitionError: If the pool is locked or completed
        """
        with self._lock:
            pool = self._require_editable_pool(name)
            rng = np.random.default_rng(seed)
            order = rng.permutation(len(pool.player_ids))
            pool.player_ids = [pool.player_ids[i] for i in order]

            logger.info(f"Shuffled pool '{name}' ({len(pool.player_ids)} players)")
            self._persist()
            return pool
