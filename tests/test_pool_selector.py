import pytest

from cricket_auction.auction.errors import NotFoundError
from cricket_auction.auction.pool_selector import eligible_players, next_player, pool_stats


@pytest.fixture
def pooled(league):
    engine = league['engine']
    engine.create_pool('Marquee')
    for name in ['Rohan Mehta', 'Imran Qureshi', 'Dev Patel', 'Sam Carter']:
        engine.assign_to_pool(league['players'][name].player_id, 'Marquee')
    return league


def test_next_player_follows_pool_order(pooled):
    engine = pooled['engine']

    player = next_player(engine.snapshot(), 'Marquee')

    assert player.name == 'Rohan Mehta'


def test_sold_unsold_and_live_players_are_skipped(pooled, sell):
    engine = pooled['engine']
    players = pooled['players']

    sell(engine, players['Rohan Mehta'], pooled['team_a'], 30)
    session = engine.start_auction(players['Imran Qureshi'].player_id)
    engine.mark_unsold(session.session_id)
    engine.start_auction(players['Dev Patel'].player_id)

    names = [p.name for p in eligible_players(engine.snapshot(), 'Marquee')]
    assert names == ['Sam Carter']

    with_unsold = [p.name for p in eligible_players(engine.snapshot(), 'Marquee', include_unsold=True)]
    assert with_unsold == ['Imran Qureshi', 'Sam Carter']


def test_exhausted_pool_returns_none(pooled, sell):
    engine = pooled['engine']
    for name, player in pooled['players'].items():
        sell(engine, player, pooled['team_b'], 25)

    assert next_player(engine.snapshot(), 'Marquee') is None


def test_random_pick_is_reproducible_with_seed(pooled):
    state = pooled['engine'].snapshot()

    first = next_player(state, 'Marquee', random_pick=True, seed=42)
    second = next_player(state, 'Marquee', random_pick=True, seed=42)

    assert first.player_id == second.player_id


def test_next_player_does_not_start_auction(pooled):
    engine = pooled['engine']
    next_player(engine.snapshot(), 'Marquee')

    assert engine.current_session is None


def test_pool_stats(pooled, sell):
    engine = pooled['engine']
    sell(engine, pooled['players']['Dev Patel'], pooled['team_a'], 45)

    stats = pool_stats(engine.snapshot(), 'Marquee')

    assert stats['player_count'] == 4
    assert stats['total_base_value'] == 80
    assert stats['sold_count'] == 1
    assert stats['sold_value'] == 45
    assert stats['available_count'] == 3
    assert stats['unsold_count'] == 0


def test_unknown_pool(engine):
    with pytest.raises(NotFoundError):
        next_player(engine.snapshot(), 'Nowhere')
