"""
API request and response models.

Request models validate admin and auctioneer input before it reaches the
engine. Serializer functions turn engine records into response models,
adding display strings for prices (amounts stay integer lakhs).
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .. import config
from ..currency import format_lakhs
from .ledgers import AuctionState
from .models import AuctionLogEntry, Player, Pool, PoolVisibility, Team
from .pool_selector import pool_stats
from .session import AuctionSession


# ========== Requests ==========

class PlayerCreate(BaseModel):
    """Request body for POST /players."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., min_length=1, max_length=100)
    role: str = Field(config.DEFAULT_PLAYER_ROLE, description=f"One of {config.PLAYER_ROLES}")
    country: str = Field(config.DEFAULT_COUNTRY)
    base_price: int = Field(..., ge=config.MIN_BASE_PRICE, le=config.MAX_BASE_PRICE,
                            description="Base price in lakhs")
    age: int = Field(0, ge=0, le=60)
    evaluation_points: int = Field(0, ge=0)
    bio: Optional[str] = None
    performance_stats: Optional[str] = None
    pool: Optional[str] = Field(None, description="Pool name to place the player in")


class PlayerUpdate(BaseModel):
    """
    Request body for PUT /players/{id}.

    Engine-owned fields (status, sold_price, assigned_team) are accepted by
    the schema so the engine can reject them with a clear error.
    """
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[str] = None
    country: Optional[str] = None
    base_price: Optional[int] = Field(None, ge=config.MIN_BASE_PRICE, le=config.MAX_BASE_PRICE)
    age: Optional[int] = Field(None, ge=0, le=60)
    evaluation_points: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    performance_stats: Optional[str] = None
    pool: Optional[str] = None
    status: Optional[str] = None
    sold_price: Optional[int] = None
    assigned_team: Optional[str] = None


class TeamCreate(BaseModel):
    """Request body for POST /teams."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., min_length=2, max_length=50)
    budget: int = Field(config.DEFAULT_TEAM_BUDGET, ge=config.MIN_TEAM_BUDGET,
                        le=config.MAX_TEAM_BUDGET, description="Total budget in lakhs")
    color_theme: str = Field(config.DEFAULT_TEAM_COLOR, pattern=r'^#[0-9A-Fa-f]{6}$')


class TeamUpdate(BaseModel):
    """Request body for PUT /teams/{id}."""
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    budget: Optional[int] = Field(None, ge=config.MIN_TEAM_BUDGET, le=config.MAX_TEAM_BUDGET)
    color_theme: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    remaining_budget: Optional[int] = None


class PoolCreate(BaseModel):
    """Request body for POST /pools."""
    name: str = Field(..., min_length=1, max_length=50)
    status: str = Field('Ready', description=f"One of {config.POOL_STATUSES}")
    visibility: str = Field('Public', description=f"One of {config.POOL_VISIBILITIES}")


class PoolAssignRequest(BaseModel):
    """Request body for POST /pools/{name}/players."""
    player_ids: List[str] = Field(..., min_length=1)


class PoolStatusRequest(BaseModel):
    status: str = Field(..., description=f"One of {config.POOL_STATUSES}")


class PoolVisibilityRequest(BaseModel):
    visibility: str = Field(..., description=f"One of {config.POOL_VISIBILITIES}")


class ShuffleRequest(BaseModel):
    seed: Optional[int] = Field(None, description="Random seed for a reproducible order")


class StartAuctionRequest(BaseModel):
    """Request body for POST /auction/start."""
    player_id: str


class BidRequest(BaseModel):
    """
    Request body for POST /auction/bid.

    Give either an absolute amount or one of the configured increments,
    which is added to the session's current bid.
    """
    session_id: str
    team_id: str
    amount: Optional[int] = Field(None, gt=0, description="New bid in lakhs")
    increment: Optional[int] = Field(None, description=f"One of {config.BID_INCREMENTS}")

    @field_validator('increment')
    @classmethod
    def check_increment(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in config.BID_INCREMENTS:
            raise ValueError(f"increment must be one of {config.BID_INCREMENTS}")
        return value

    @model_validator(mode='after')
    def check_amount_or_increment(self) -> 'BidRequest':
        if (self.amount is None) == (self.increment is None):
            raise ValueError("Provide exactly one of amount or increment")
        return self


class SessionActionRequest(BaseModel):
    """Request body for POST /auction/finalize and /auction/unsold."""
    session_id: str


# ========== Responses ==========

class PlayerResponse(BaseModel):
    player_id: str
    name: str
    role: str
    country: str
    base_price: int
    base_price_display: str
    age: int
    evaluation_points: int
    pool: Optional[str]
    status: str
    sold_price: Optional[int]
    sold_price_display: Optional[str]
    assigned_team: Optional[str]
    assigned_team_name: Optional[str]
    bio: Optional[str]
    performance_stats: Optional[str]
    created_at: str


class TeamResponse(BaseModel):
    team_id: str
    name: str
    color_theme: str
    budget: int
    budget_display: str
    remaining_budget: int
    remaining_budget_display: str
    total_spent: int
    players_count: int
    created_at: str


class PoolResponse(BaseModel):
    pool_id: str
    name: str
    status: str
    visibility: str
    player_ids: List[str]
    player_count: int
    total_base_value: int
    sold_count: int
    sold_value: int = Field(description="Total paid for sold players, in lakhs")
    unsold_count: int
    available_count: int
    created_at: str


class BidResponse(BaseModel):
    team_id: str
    team_name: Optional[str]
    amount: int
    amount_display: str
    timestamp: str


class SessionResponse(BaseModel):
    session_id: str
    player_id: str
    player: Optional[PlayerResponse]
    state: str
    is_active: bool
    is_completed: bool
    base_price: int
    current_bid: int
    current_bid_display: str
    leading_team_id: Optional[str]
    leading_team_name: Optional[str]
    final_price: Optional[int]
    started_at: str
    completed_at: Optional[str]
    bids: List[BidResponse]


class LogEntryResponse(BaseModel):
    log_id: str
    player_id: str
    player_name: Optional[str]
    team_id: str
    team_name: Optional[str]
    sold_price: int
    sold_price_display: str
    timestamp: str


class LeaderboardEntry(BaseModel):
    rank: int
    team_id: str
    team_name: str
    color_theme: str
    players_count: int
    total_points: int
    total_spent: int
    remaining_budget: int
    budget: int
    average_price: float


class TopBuyEntry(BaseModel):
    player_id: str
    player_name: str
    team_id: str
    team_name: str
    sold_price: int
    sold_price_display: str
    timestamp: str


class LeaderboardResponse(BaseModel):
    updated_at: str = Field(description="ISO-8601 timestamp")
    teams: List[LeaderboardEntry] = Field(description="Teams sorted by rank")
    top_buys: List[TopBuyEntry] = Field(default_factory=list, description="Most expensive sales")


class DashboardStatsResponse(BaseModel):
    total_players: int
    available_players: int
    pooled_players: int
    players_sold: int
    players_unsold: int
    total_teams: int
    total_pools: int
    total_budget: int
    total_spent: int
    auction_status: str
    active_auctions: int


class LiveFeedResponse(BaseModel):
    """Payload polled by viewer dashboards at GET /auction/live."""
    updated_at: str = Field(description="ISO-8601 timestamp")
    refresh_interval: int = Field(description="Suggested polling interval in seconds")
    current_auction: Optional[SessionResponse]
    teams: List[TeamResponse]
    pools: List[PoolResponse] = Field(description="Public pools only")
    recent_sales: List[LogEntryResponse] = Field(description="Newest first")
    stats: DashboardStatsResponse


# ========== Serializer Functions ==========

def _team_name(state: AuctionState, team_id: Optional[str]) -> Optional[str]:
    if team_id is None or team_id not in state.teams:
        return None
    return state.teams.get(team_id).name


def serialize_player(player: Player, state: AuctionState) -> PlayerResponse:
    return PlayerResponse(
        player_id=player.player_id,
        name=player.name,
        role=player.role.value,
        country=player.country,
        base_price=player.base_price,
        base_price_display=format_lakhs(player.base_price),
        age=player.age,
        evaluation_points=player.evaluation_points,
        pool=player.pool,
        status=player.status.value,
        sold_price=player.sold_price,
        sold_price_display=format_lakhs(player.sold_price) if player.sold_price is not None else None,
        assigned_team=player.assigned_team,
        assigned_team_name=_team_name(state, player.assigned_team),
        bio=player.bio,
        performance_stats=player.performance_stats,
        created_at=player.created_at.isoformat(),
    )


def serialize_team(team: Team, state: AuctionState) -> TeamResponse:
    return TeamResponse(
        team_id=team.team_id,
        name=team.name,
        color_theme=team.color_theme,
        budget=team.budget,
        budget_display=format_lakhs(team.budget),
        remaining_budget=team.remaining_budget,
        remaining_budget_display=format_lakhs(team.remaining_budget),
        total_spent=team.total_spent(),
        players_count=len(state.players.sold_to(team.team_id)),
        created_at=team.created_at.isoformat(),
    )


def serialize_pool(pool: Pool, state: AuctionState) -> PoolResponse:
    stats = pool_stats(state, pool.name)
    return PoolResponse(
        pool_id=pool.pool_id,
        name=pool.name,
        status=pool.status.value,
        visibility=pool.visibility.value,
        player_ids=list(pool.player_ids),
        player_count=stats['player_count'],
        total_base_value=stats['total_base_value'],
        sold_count=stats['sold_count'],
        sold_value=stats['sold_value'],
        unsold_count=stats['unsold_count'],
        available_count=stats['available_count'],
        created_at=pool.created_at.isoformat(),
    )


def serialize_session(session: AuctionSession, state: AuctionState) -> SessionResponse:
    player = state.players.get(session.player_id) if session.player_id in state.players else None
    return SessionResponse(
        session_id=session.session_id,
        player_id=session.player_id,
        player=serialize_player(player, state) if player is not None else None,
        state=session.state.value,
        is_active=session.is_active,
        is_completed=session.is_completed,
        base_price=session.base_price,
        current_bid=session.current_bid,
        current_bid_display=format_lakhs(session.current_bid),
        leading_team_id=session.leading_team_id,
        leading_team_name=_team_name(state, session.leading_team_id),
        final_price=session.final_price,
        started_at=session.started_at.isoformat(),
        completed_at=session.completed_at.isoformat() if session.completed_at else None,
        bids=[
            BidResponse(
                team_id=bid.team_id,
                team_name=_team_name(state, bid.team_id),
                amount=bid.amount,
                amount_display=format_lakhs(bid.amount),
                timestamp=bid.timestamp.isoformat(),
            )
            for bid in session.bids
        ],
    )


def serialize_log_entry(entry: AuctionLogEntry, state: AuctionState) -> LogEntryResponse:
    player_name = state.players.get(entry.player_id).name if entry.player_id in state.players else None
    return LogEntryResponse(
        log_id=entry.log_id,
        player_id=entry.player_id,
        player_name=player_name,
        team_id=entry.team_id,
        team_name=_team_name(state, entry.team_id),
        sold_price=entry.sold_price,
        sold_price_display=format_lakhs(entry.sold_price),
        timestamp=entry.timestamp.isoformat(),
    )


def serialize_leaderboard(rows: List[Dict], buys: Optional[List[Dict]] = None) -> LeaderboardResponse:
    return LeaderboardResponse(
        updated_at=datetime.now().isoformat(),
        teams=[LeaderboardEntry(**row) for row in rows],
        top_buys=[
            TopBuyEntry(**buy, sold_price_display=format_lakhs(buy['sold_price']))
            for buy in buys or []
        ],
    )


def build_live_feed(
    state: AuctionState,
    stats: Dict,
    history_limit: int = config.LIVE_FEED_HISTORY_LIMIT
) -> LiveFeedResponse:
    """
    Build the viewer feed from a state snapshot.

    Args:
        state: Snapshot taken under the engine lock
        stats: Dashboard stats for the same snapshot
        history_limit: Number of recent sales to include

    Returns:
        LiveFeedResponse (private pools excluded)
    """
    active = state.active_session
    recent = sorted(state.auction_log, key=lambda e: e.timestamp, reverse=True)[:history_limit]

    return LiveFeedResponse(
        updated_at=datetime.now().isoformat(),
        refresh_interval=config.FRONTEND_AUTO_REFRESH_INTERVAL,
        current_auction=serialize_session(active, state) if active is not None else None,
        teams=[serialize_team(team, state) for team in state.teams],
        pools=[
            serialize_pool(pool, state)
            for pool in state.pools
            if pool.visibility == PoolVisibility.PUBLIC
        ],
        recent_sales=[serialize_log_entry(entry, state) for entry in recent],
        stats=DashboardStatsResponse(**stats),
    )
