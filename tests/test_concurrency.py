"""
Concurrent callers against one engine.

Handlers run on FastAPI's threadpool, so these tests hammer the engine from
a ThreadPoolExecutor and check that outcomes match a serial execution.
"""

from concurrent.futures import ThreadPoolExecutor

from cricket_auction.auction.errors import AuctionError, ConflictError, StaleBidError
from cricket_auction.auction.models import PlayerStatus

from conftest import add_team


def test_only_one_of_many_concurrent_starts_wins(engine):
    players = [
        engine.add_player(f'Racer {i}', 'Batsman', 'India', base_price=20)
        for i in range(20)
    ]

    def start(player):
        try:
            return engine.start_auction(player.player_id)
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(start, players))

    opened = [r for r in results if r is not None]
    assert len(opened) == 1
    assert engine.current_session.session_id == opened[0].session_id


def test_concurrent_bids_apply_in_order(engine):
    teams = [add_team(engine, f'Team {i}', 10000) for i in range(4)]
    player = engine.add_player('Contested', 'All-rounder', 'India', base_price=20)
    session = engine.start_auction(player.player_id)

    bids = [(teams[i % 4], 20 + 5 * i) for i in range(1, 101)]

    def bid(args):
        team, amount = args
        try:
            engine.place_bid(session.session_id, team.team_id, amount)
            return amount
        except StaleBidError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        accepted = [a for a in pool.map(bid, bids) if a is not None]

    amounts = [b.amount for b in session.bids]
    assert amounts == sorted(amounts)
    assert len(set(amounts)) == len(amounts)
    assert sorted(accepted) == amounts
    assert session.current_bid == max(amounts)


def test_budget_never_overdrawn_under_contention(engine):
    team = add_team(engine, 'Thrifty XI', 200)
    players = [
        engine.add_player(f'Target {i}', 'Bowler', 'India', base_price=30)
        for i in range(12)
    ]

    def buy(player):
        try:
            session = engine.start_auction(player.player_id)
        except ConflictError:
            return False
        try:
            engine.place_bid(session.session_id, team.team_id, 35)
            engine.finalize(session.session_id)
            return True
        except AuctionError:
            engine.mark_unsold(session.session_id)
            return False

    with ThreadPoolExecutor(max_workers=6) as pool:
        for _ in range(3):
            list(pool.map(buy, [p for p in players if p.status != PlayerStatus.SOLD]))

    sold = engine.state.players.sold_to(team.team_id)
    assert len(sold) <= 5
    assert engine.state.teams.get(team.team_id).remaining_budget == 200 - 35 * len(sold)
    assert engine.state.teams.get(team.team_id).remaining_budget >= 0
    engine.state.validate()
