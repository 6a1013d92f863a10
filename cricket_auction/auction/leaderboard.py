"""
Leaderboard and dashboard aggregates.

Pure projections over players, teams and the auction log. They never write
state and give identical results when recomputed from the same snapshot.
"""

import logging
from typing import Dict, List

import pandas as pd

from .ledgers import AuctionState
from .models import PlayerStatus

logger = logging.getLogger(__name__)


def calculate_leaderboard(state: AuctionState) -> List[Dict]:
    """
    Rank teams by the evaluation points of the players they bought.

    Algorithm:
    1. Collect sold players per team (status Sold, assigned_team == team)
    2. Sum evaluation points and sold prices
    3. Sort by points descending, then spend ascending, then name
    4. Assign ranks 1..N

    Args:
        state: Auction state (or snapshot)

    Returns:
        List of team dicts sorted by rank, each containing:
        - rank, team_id, team_name, color_theme
        - players_count, total_points
        - total_spent, remaining_budget, budget
        - average_price (lakhs, 0 when nothing bought)
    """
    rows = []
    for team in state.teams:
        bought = state.players.sold_to(team.team_id)
        total_spent = sum(p.sold_price for p in bought)
        rows.append({
            'team_id': team.team_id,
            'team_name': team.name,
            'color_theme': team.color_theme,
            'players_count': len(bought),
            'total_points': sum(p.evaluation_points for p in bought),
            'total_spent': total_spent,
            'remaining_budget': team.remaining_budget,
            'budget': team.budget,
            'average_price': round(total_spent / len(bought), 2) if bought else 0,
        })

    rows.sort(key=lambda r: (-r['total_points'], r['total_spent'], r['team_name']))
    for rank, row in enumerate(rows, start=1):
        row['rank'] = rank

    logger.debug(f"Calculated leaderboard for {len(rows)} teams")
    return rows


def get_dashboard_stats(state: AuctionState) -> Dict:
    """
    Headline counts for the admin dashboard.

    Returns:
        Dict with player counts by status, team count, total budget,
        total spent, auction status and active auction count
    """
    players = state.players.all()
    by_status = {status: 0 for status in PlayerStatus}
    for player in players:
        by_status[player.status] += 1

    active = 1 if state.active_session is not None else 0
    remaining = by_status[PlayerStatus.AVAILABLE] + by_status[PlayerStatus.POOLED]

    if active:
        auction_status = 'Active'
    elif not state.session_history:
        auction_status = 'Not Started'
    elif remaining == 0:
        auction_status = 'Completed'
    else:
        auction_status = 'In Progress'

    return {
        'total_players': len(players),
        'available_players': by_status[PlayerStatus.AVAILABLE],
        'pooled_players': by_status[PlayerStatus.POOLED],
        'players_sold': by_status[PlayerStatus.SOLD],
        'players_unsold': by_status[PlayerStatus.UNSOLD],
        'total_teams': len(state.teams),
        'total_pools': len(state.pools),
        'total_budget': state.teams.total_budget(),
        'total_spent': sum(e.sold_price for e in state.auction_log),
        'auction_status': auction_status,
        'active_auctions': active,
    }


def get_team_summary(state: AuctionState) -> pd.DataFrame:
    """
    Get summary statistics for all teams.

    Returns:
        DataFrame with team_id, team_name, players, spent, budget, remaining_budget
    """
    summary_data = []
    for team in state.teams:
        bought = state.players.sold_to(team.team_id)
        summary_data.append({
            'team_id': team.team_id,
            'team_name': team.name,
            'players': len(bought),
            'spent': sum(p.sold_price for p in bought),
            'budget': team.budget,
            'remaining_budget': team.remaining_budget,
        })

    columns = ['team_id', 'team_name', 'players', 'spent', 'budget', 'remaining_budget']
    return pd.DataFrame(summary_data, columns=columns).sort_values('team_name').reset_index(drop=True)


def top_buys(state: AuctionState, limit: int = 5) -> List[Dict]:
    """
    Most expensive sales, newest first among equal prices.

    Args:
        state: Auction state (or snapshot)
        limit: Number of sales to return

    Returns:
        List of dicts with player_id, player_name, team_id, team_name, sold_price, timestamp
    """
    entries = sorted(
        state.auction_log,
        key=lambda e: (e.sold_price, e.timestamp),
        reverse=True
    )[:limit]

    buys = []
    for entry in entries:
        player_name = state.players.get(entry.player_id).name if entry.player_id in state.players else entry.player_id
        team_name = state.teams.get(entry.team_id).name if entry.team_id in state.teams else entry.team_id
        buys.append({
            'player_id': entry.player_id,
            'player_name': player_name,
            'team_id': entry.team_id,
            'team_name': team_name,
            'sold_price': entry.sold_price,
            'timestamp': entry.timestamp.isoformat(),
        })
    return buys
