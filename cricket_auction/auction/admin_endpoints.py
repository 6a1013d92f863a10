"""
Admin endpoints - roster, team and pool management.

Implements CRUD over the engine's admin operations:
- /players: list, create, read, update, delete
- /teams: list, create, read, update, delete
- /pools: list, create, delete, membership, order, status, visibility

Engine-owned fields (player status and sale fields, team remaining budget)
are rejected by the engine and surface here as 400 responses.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .api_dependencies import get_engine, to_http_exception
from .api_serializers import (
    PlayerCreate,
    PlayerResponse,
    PlayerUpdate,
    PoolAssignRequest,
    PoolCreate,
    PoolResponse,
    PoolStatusRequest,
    PoolVisibilityRequest,
    ShuffleRequest,
    TeamCreate,
    TeamResponse,
    TeamUpdate,
    serialize_player,
    serialize_pool,
    serialize_team,
)
from .errors import AuctionError
from .models import PlayerStatus
from .pool_selector import eligible_players, next_player
from .transaction_engine import AuctionTransactionEngine

logger = logging.getLogger(__name__)

admin_router = APIRouter(tags=["Admin"])


# ===== Players =====

@admin_router.get("/players", response_model=List[PlayerResponse])
def list_players(
    status: Optional[str] = Query(None, description="Filter by status (Available, Pooled, Sold, Unsold)"),
    role: Optional[str] = Query(None, description="Filter by role"),
    pool: Optional[str] = Query(None, description="Filter by pool name"),
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    List players, optionally filtered.

    Returns:
        List of PlayerResponse in creation order
    """
    if status is not None and status not in {s.value for s in PlayerStatus}:
        raise HTTPException(status_code=422, detail=f"Unknown status: {status}")

    state = engine.snapshot()
    players = state.players.all()
    if status is not None:
        players = [p for p in players if p.status.value == status]
    if role is not None:
        players = [p for p in players if p.role.value == role]
    if pool is not None:
        players = [p for p in players if p.pool == pool]

    return [serialize_player(p, state) for p in players]


@admin_router.post("/players", response_model=PlayerResponse, status_code=201)
def create_player(request: PlayerCreate, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        player = engine.add_player(**request.model_dump())
        return serialize_player(player, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "create player")


@admin_router.get("/players/{player_id}", response_model=PlayerResponse)
def get_player(player_id: str, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        state = engine.snapshot()
        return serialize_player(state.players.get(player_id), state)
    except AuctionError as e:
        raise to_http_exception(e, "get player")


@admin_router.put("/players/{player_id}", response_model=PlayerResponse)
def update_player(
    player_id: str,
    request: PlayerUpdate,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    Update admin-owned player fields.

    Only fields present in the request body are changed. Sending
    "pool": null removes the player from their pool.

    Raises:
        400: Engine-owned field included, or base price change after auction
        404: Unknown player or pool
        422: Invalid value
    """
    try:
        changes = request.model_dump(exclude_unset=True)
        player = engine.update_player(player_id, **changes)
        return serialize_player(player, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "update player")


@admin_router.delete("/players/{player_id}")
def delete_player(player_id: str, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        player = engine.delete_player(player_id)
        return {'success': True, 'message': f"Deleted player {player.name}"}
    except AuctionError as e:
        raise to_http_exception(e, "delete player")


# ===== Teams =====

@admin_router.get("/teams", response_model=List[TeamResponse])
def list_teams(engine: AuctionTransactionEngine = Depends(get_engine)):
    state = engine.snapshot()
    return [serialize_team(team, state) for team in state.teams]


@admin_router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(request: TeamCreate, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        team = engine.create_team(**request.model_dump())
        return serialize_team(team, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "create team")


@admin_router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(team_id: str, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        state = engine.snapshot()
        return serialize_team(state.teams.get(team_id), state)
    except AuctionError as e:
        raise to_http_exception(e, "get team")


@admin_router.put("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    request: TeamUpdate,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    Update a team's name, colour or budget.

    Raises:
        400: remaining_budget included, or budget change after sales began
        404: Unknown team
    """
    try:
        team = engine.update_team(team_id, **request.model_dump(exclude_unset=True))
        return serialize_team(team, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "update team")


@admin_router.delete("/teams/{team_id}")
def delete_team(team_id: str, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        team = engine.delete_team(team_id)
        return {'success': True, 'message': f"Deleted team {team.name}"}
    except AuctionError as e:
        raise to_http_exception(e, "delete team")


# ===== Pools =====

@admin_router.get("/pools", response_model=List[PoolResponse])
def list_pools(engine: AuctionTransactionEngine = Depends(get_engine)):
    state = engine.snapshot()
    return [serialize_pool(pool, state) for pool in state.pools]


@admin_router.post("/pools", response_model=PoolResponse, status_code=201)
def create_pool(request: PoolCreate, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        pool = engine.create_pool(request.name, request.status, request.visibility)
        return serialize_pool(pool, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "create pool")


@admin_router.delete("/pools/{name}")
def delete_pool(name: str, engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Delete an empty pool.

    Raises:
        409: Pool still has players
        404: Unknown pool
    """
    try:
        engine.delete_pool(name)
        return {'success': True, 'message': f"Deleted pool '{name}'"}
    except AuctionError as e:
        raise to_http_exception(e, "delete pool")


@admin_router.get("/pools/{name}/players", response_model=List[PlayerResponse])
def get_pool_players(
    name: str,
    eligible_only: bool = Query(False, description="Only players who can still be auctioned"),
    include_unsold: bool = Query(False, description="With eligible_only, include unsold players"),
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    Players in a pool, in pool order.
    """
    try:
        state = engine.snapshot()
        if eligible_only:
            players = eligible_players(state, name, include_unsold=include_unsold)
        else:
            pool = state.pools.get(name)
            players = [state.players.get(pid) for pid in pool.player_ids]
        return [serialize_player(p, state) for p in players]
    except AuctionError as e:
        raise to_http_exception(e, "list pool players")


@admin_router.get("/pools/{name}/next")
def get_next_player(
    name: str,
    include_unsold: bool = Query(False),
    random_pick: bool = Query(False, alias="random"),
    seed: Optional[int] = Query(None),
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    Suggest the next player to auction from a pool.

    Does not start an auction.

    Returns:
        {"player": PlayerResponse} or {"player": null} if the pool is exhausted
    """
    try:
        state = engine.snapshot()
        player = next_player(state, name, include_unsold=include_unsold,
                             random_pick=random_pick, seed=seed)
        return {'player': serialize_player(player, state) if player is not None else None}
    except AuctionError as e:
        raise to_http_exception(e, "pick next player")


@admin_router.post("/pools/{name}/players", response_model=PoolResponse)
def add_players_to_pool(
    name: str,
    request: PoolAssignRequest,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """
    Move players into a pool (leaving their previous pool).

    Players are moved one at a time; the first failure stops the request
    and earlier moves are kept.
    """
    try:
        for player_id in request.player_ids:
            engine.assign_to_pool(player_id, name)
        state = engine.snapshot()
        return serialize_pool(state.pools.get(name), state)
    except AuctionError as e:
        raise to_http_exception(e, "assign players to pool")


@admin_router.delete("/pools/{name}/players/{player_id}", response_model=PlayerResponse)
def remove_player_from_pool(
    name: str,
    player_id: str,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    try:
        state = engine.snapshot()
        if state.players.get(player_id).pool != name:
            raise HTTPException(status_code=404, detail=f"Player {player_id} is not in pool '{name}'")
        player = engine.remove_from_pool(player_id)
        return serialize_player(player, engine.snapshot())
    except AuctionError as e:
        raise to_http_exception(e, "remove player from pool")


@admin_router.post("/pools/{name}/shuffle", response_model=PoolResponse)
def shuffle_pool(
    name: str,
    request: Optional[ShuffleRequest] = None,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    try:
        seed = request.seed if request is not None else None
        pool = engine.shuffle_pool(name, seed=seed)
        return serialize_pool(pool, engine.snapshot())
    except AuctionError as e:
        raise to_http_exception(e, "shuffle pool")


@admin_router.put("/pools/{name}/status", response_model=PoolResponse)
def set_pool_status(
    name: str,
    request: PoolStatusRequest,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    try:
        pool = engine.set_pool_status(name, request.status)
        return serialize_pool(pool, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "set pool status")


@admin_router.put("/pools/{name}/visibility", response_model=PoolResponse)
def set_pool_visibility(
    name: str,
    request: PoolVisibilityRequest,
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    try:
        pool = engine.set_pool_visibility(name, request.visibility)
        return serialize_pool(pool, engine.snapshot())
    except (AuctionError, ValueError) as e:
        raise to_http_exception(e, "set pool visibility")
