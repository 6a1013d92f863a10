"""
Shared fixtures for auction tests.
"""

import pytest

from cricket_auction.auction.models import Team, new_id
from cricket_auction.auction.transaction_engine import AuctionTransactionEngine


def add_team(engine: AuctionTransactionEngine, name: str, budget: int) -> Team:
    """Register a team directly on the ledger, bypassing admin budget limits."""
    team = Team(team_id=new_id(), name=name, budget=budget)
    engine.state.teams.add(team)
    return team


@pytest.fixture
def engine():
    """In-memory engine with no persistence."""
    return AuctionTransactionEngine()


@pytest.fixture
def persistent_engine(tmp_path):
    """Engine backed by a checkpoint and auction log in a temp directory."""
    return AuctionTransactionEngine.open(tmp_path / 'auction')


@pytest.fixture
def league(engine):
    """
    Two small-budget teams and a handful of players.

    Returns:
        Dict with engine, team_a, team_b and players keyed by name
    """
    team_a = add_team(engine, 'Team A', 100)
    team_b = add_team(engine, 'Team B', 100)

    players = {}
    for name, role, points in [
        ('Rohan Mehta', 'Batsman', 80),
        ('Imran Qureshi', 'Bowler', 70),
        ('Dev Patel', 'All-rounder', 90),
        ('Sam Carter', 'Wicket-keeper', 60),
    ]:
        players[name] = engine.add_player(
            name=name, role=role, country='India', base_price=20, evaluation_points=points
        )

    return {'engine': engine, 'team_a': team_a, 'team_b': team_b, 'players': players}


@pytest.fixture
def sell():
    """Helper that runs a full auction: start, one bid, finalize."""
    def _sell(engine, player, team, amount):
        session = engine.start_auction(player.player_id)
        engine.place_bid(session.session_id, team.team_id, amount)
        return engine.finalize(session.session_id)
    return _sell
