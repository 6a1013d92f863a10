"""
FastAPI server for the live player auction.

Provides HTTP endpoints to run auctions (start, bid, sell, pass), the viewer
live feed, leaderboard, dashboard stats and results export. Admin CRUD for
players, teams and pools is mounted from admin_endpoints.py.
"""

import logging
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .. import config
from ..output_writer import OutputWriter
from .admin_endpoints import admin_router
from .api_dependencies import get_engine, to_http_exception
from .api_serializers import (
    BidRequest,
    DashboardStatsResponse,
    LeaderboardResponse,
    LiveFeedResponse,
    LogEntryResponse,
    SessionActionRequest,
    SessionResponse,
    StartAuctionRequest,
    build_live_feed,
    serialize_leaderboard,
    serialize_log_entry,
    serialize_session,
)
from .errors import AuctionError
from .leaderboard import calculate_leaderboard, get_dashboard_stats, top_buys
from .transaction_engine import AuctionTransactionEngine

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Cricket Player Auction API",
    description="Run live player auctions: sessions, bids, budgets and results",
    version="1.0.0"
)

# CORS middleware for admin and viewer dashboards
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router, prefix="")


# ===== Auction Actions =====

@app.post("/auction/start", response_model=SessionResponse)
def start_auction(request: StartAuctionRequest, engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Open the auction for a player.

    Returns:
        SessionResponse for the new open session

    Raises:
        409 Conflict: If another auction is open
        400 Bad Request: If the player is already sold
        404 Not Found: If the player does not exist
    """
    try:
        logger.info(f"Starting auction for player {request.player_id}")
        session = engine.start_auction(request.player_id)
        return serialize_session(session, engine.snapshot())

    except AuctionError as e:
        raise to_http_exception(e, "start auction")


@app.post("/auction/bid", response_model=SessionResponse)
def place_bid(request: BidRequest, engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Place a bid for a team.

    The amount is either given directly or computed as current bid plus one
    of the configured increments.

    Raises:
        400 Bad Request: Closed session or team over budget
        409 Conflict: Bid does not beat the current bid
        404 Not Found: Unknown session or team
    """
    try:
        amount = request.amount
        if amount is None:
            session = engine.get_session(request.session_id)
            amount = session.current_bid + request.increment

        session = engine.place_bid(request.session_id, request.team_id, amount)
        return serialize_session(session, engine.snapshot())

    except AuctionError as e:
        raise to_http_exception(e, "place bid")


@app.post("/auction/finalize", response_model=LogEntryResponse)
def finalize_auction(request: SessionActionRequest, engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Sell the player to the leading team.

    Returns:
        LogEntryResponse for the committed sale

    Raises:
        400 Bad Request: No leading team, session closed, or budget shortfall
        404 Not Found: Unknown session
    """
    try:
        entry = engine.finalize(request.session_id)
        return serialize_log_entry(entry, engine.snapshot())

    except AuctionError as e:
        raise to_http_exception(e, "finalize auction")


@app.post("/auction/unsold", response_model=SessionResponse)
def mark_unsold(request: SessionActionRequest, engine: AuctionTransactionEngine = Depends(get_engine)):
    try:
        session = engine.mark_unsold(request.session_id)
        return serialize_session(session, engine.snapshot())

    except AuctionError as e:
        raise to_http_exception(e, "mark player unsold")


@app.get("/auction/current")
def get_current_auction(engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Get the open auction session.

    Returns:
        {"session": SessionResponse} or {"session": null} when nothing is on the block
    """
    state = engine.snapshot()
    active = state.active_session
    return {'session': serialize_session(active, state) if active is not None else None}


@app.get("/auction/live", response_model=LiveFeedResponse)
def get_live_feed(engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Viewer feed: current auction, team budgets, public pools and recent sales.

    Polled by viewer dashboards every config.FRONTEND_AUTO_REFRESH_INTERVAL seconds.
    """
    state = engine.snapshot()
    return build_live_feed(state, get_dashboard_stats(state))


@app.get("/auction/sessions", response_model=List[SessionResponse])
def list_sessions(
    limit: int = Query(50, ge=1, le=500, description="Most recent sessions to return"),
    engine: AuctionTransactionEngine = Depends(get_engine)
):
    """Completed sessions, newest first."""
    state = engine.snapshot()
    history = list(reversed(state.session_history))[:limit]
    return [serialize_session(session, state) for session in history]


# ===== Reads and Exports =====

@app.get("/auction-logs", response_model=List[LogEntryResponse])
def get_auction_logs(engine: AuctionTransactionEngine = Depends(get_engine)):
    """All sales in commit order."""
    state = engine.snapshot()
    return [serialize_log_entry(entry, state) for entry in state.auction_log]


@app.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Teams ranked by the evaluation points of the players they bought,
    with the most expensive sales so far.

    Returns:
        LeaderboardResponse sorted by rank
    """
    try:
        state = engine.snapshot()
        return serialize_leaderboard(calculate_leaderboard(state), top_buys(state))

    except Exception as e:
        logger.error(f"Failed to calculate leaderboard: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to calculate leaderboard: {e}")


@app.get("/dashboard/stats", response_model=DashboardStatsResponse)
def get_stats(engine: AuctionTransactionEngine = Depends(get_engine)):
    return get_dashboard_stats(engine.snapshot())


def _csv_download(df, prefix: str) -> Response:
    filename = f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=df.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@app.get("/export/results")
def export_results(engine: AuctionTransactionEngine = Depends(get_engine)):
    """
    Download auction results as CSV.

    Sold players grouped by team, then unsold players, then players not yet auctioned.
    """
    try:
        return _csv_download(OutputWriter().build_results_frame(engine.snapshot()), 'auction_results')

    except Exception as e:
        logger.error(f"Failed to export results: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to export results: {e}")


@app.get("/export/auction-log")
def export_auction_log(engine: AuctionTransactionEngine = Depends(get_engine)):
    """Download the auction log (every sale, in commit order) as CSV."""
    try:
        return _csv_download(OutputWriter().build_log_frame(engine.snapshot()), 'auction_log')

    except Exception as e:
        logger.error(f"Failed to export auction log: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to export auction log: {e}")


@app.get("/config")
def get_config():
    """Auction settings the admin and viewer UIs need."""
    return {
        'player_roles': config.PLAYER_ROLES,
        'bid_increments': config.BID_INCREMENTS,
        'min_base_price': config.MIN_BASE_PRICE,
        'max_base_price': config.MAX_BASE_PRICE,
        'default_team_budget': config.DEFAULT_TEAM_BUDGET,
        'min_team_budget': config.MIN_TEAM_BUDGET,
        'max_team_budget': config.MAX_TEAM_BUDGET,
        'pool_statuses': config.POOL_STATUSES,
        'pool_visibilities': config.POOL_VISIBILITIES,
        'refresh_interval': config.FRONTEND_AUTO_REFRESH_INTERVAL,
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "cricket-auction-api",
        "timestamp": datetime.now().isoformat()
    }
