import pytest

from cricket_auction.auction.errors import (
    BudgetExceededError,
    ConflictError,
    InvalidTransitionError,
    LockedFieldError,
    NotFoundError,
    PoolNotEmptyError,
    StaleBidError,
)
from cricket_auction.auction.models import PlayerStatus, PoolStatus
from cricket_auction.auction.session import SessionState

from conftest import add_team


# ===== Auction scenarios =====

def test_outbid_then_sell_to_highest_bidder(engine):
    team_a = add_team(engine, 'Team A', 100)
    team_b = add_team(engine, 'Team B', 100)
    player = engine.add_player('Player P', 'Batsman', 'India', base_price=20)

    session = engine.start_auction(player.player_id)
    engine.place_bid(session.session_id, team_a.team_id, 30)
    assert session.current_bid == 30
    assert session.leading_team_id == team_a.team_id

    with pytest.raises(StaleBidError):
        engine.place_bid(session.session_id, team_b.team_id, 25)

    engine.place_bid(session.session_id, team_b.team_id, 40)
    entry = engine.finalize(session.session_id)

    player = engine.state.players.get(player.player_id)
    assert player.status == PlayerStatus.SOLD
    assert player.sold_price == 40
    assert player.assigned_team == team_b.team_id
    assert engine.state.teams.get(team_b.team_id).remaining_budget == 60
    assert engine.state.teams.get(team_a.team_id).remaining_budget == 100
    assert engine.state.auction_log == [entry]
    assert entry.sold_price == 40 and entry.team_id == team_b.team_id


def test_bid_over_budget_leaves_session_untouched(engine):
    team_c = add_team(engine, 'Team C', 50)
    player = engine.add_player('Player Q', 'Bowler', 'India', base_price=20)

    session = engine.start_auction(player.player_id)
    with pytest.raises(BudgetExceededError) as exc_info:
        engine.place_bid(session.session_id, team_c.team_id, 60)

    assert exc_info.value.remaining_budget == 50
    assert session.state == SessionState.OPEN
    assert session.current_bid == 20
    assert session.leading_team_id is None


def test_unsold_player_can_be_auctioned_again(engine):
    team = add_team(engine, 'Team A', 100)
    player = engine.add_player('Player R', 'All-rounder', 'India', base_price=20)

    session = engine.start_auction(player.player_id)
    engine.mark_unsold(session.session_id)

    assert engine.state.players.get(player.player_id).status == PlayerStatus.UNSOLD
    assert engine.state.teams.get(team.team_id).remaining_budget == 100
    assert engine.state.auction_log == []

    again = engine.start_auction(player.player_id)
    assert again.is_active
    assert again.session_id != session.session_id


def test_second_auction_conflicts_while_one_is_open(engine):
    player_t = engine.add_player('Player T', 'Batsman', 'India', base_price=20)
    player_s = engine.add_player('Player S', 'Batsman', 'India', base_price=20)

    engine.start_auction(player_t.player_id)
    with pytest.raises(ConflictError):
        engine.start_auction(player_s.player_id)


def test_pool_with_players_cannot_be_deleted_until_emptied(engine):
    engine.create_pool('Pool A')
    first = engine.add_player('First', 'Batsman', 'India', base_price=20, pool='Pool A')
    second = engine.add_player('Second', 'Bowler', 'India', base_price=20, pool='Pool A')

    with pytest.raises(PoolNotEmptyError) as exc_info:
        engine.delete_pool('Pool A')
    assert exc_info.value.player_count == 2

    engine.remove_from_pool(first.player_id)
    engine.create_pool('Pool B')
    engine.assign_to_pool(second.player_id, 'Pool B')

    engine.delete_pool('Pool A')
    assert 'Pool A' not in engine.state.pools
    assert engine.state.players.get(first.player_id).status == PlayerStatus.AVAILABLE
    assert engine.state.players.get(second.player_id).pool == 'Pool B'


# ===== Session rules =====

def test_finalize_without_bids_is_rejected(league):
    engine = league['engine']
    player = league['players']['Rohan Mehta']

    session = engine.start_auction(player.player_id)
    with pytest.raises(InvalidTransitionError):
        engine.finalize(session.session_id)

    assert session.is_active


def test_closed_session_rejects_bids(league, sell):
    engine = league['engine']
    entry = sell(engine, league['players']['Rohan Mehta'], league['team_a'], 30)
    session = engine.state.session_history[-1]

    assert session.final_price == entry.sold_price
    with pytest.raises(InvalidTransitionError):
        engine.place_bid(session.session_id, league['team_b'].team_id, 50)
    with pytest.raises(InvalidTransitionError):
        engine.finalize(session.session_id)


def test_sold_player_cannot_be_auctioned_again(league, sell):
    engine = league['engine']
    player = league['players']['Rohan Mehta']
    sell(engine, player, league['team_a'], 30)

    with pytest.raises(InvalidTransitionError):
        engine.start_auction(player.player_id)


def test_unknown_ids_raise_not_found(league):
    engine = league['engine']

    with pytest.raises(NotFoundError):
        engine.start_auction('missing')

    session = engine.start_auction(league['players']['Dev Patel'].player_id)
    with pytest.raises(NotFoundError):
        engine.place_bid(session.session_id, 'missing', 30)
    with pytest.raises(NotFoundError):
        engine.place_bid('missing', league['team_a'].team_id, 30)


def test_finalize_rechecks_budget(engine):
    team = engine.create_team('Chennai Chargers', budget=6000)
    player = engine.add_player('Star Player', 'Batsman', 'India', base_price=2000)

    session = engine.start_auction(player.player_id)
    engine.place_bid(session.session_id, team.team_id, 5500)
    engine.update_team(team.team_id, budget=5000)

    with pytest.raises(BudgetExceededError):
        engine.finalize(session.session_id)

    assert session.is_active
    assert engine.state.players.get(player.player_id).status == PlayerStatus.AVAILABLE
    assert engine.state.teams.get(team.team_id).remaining_budget == 5000
    assert engine.state.auction_log == []


def test_failed_log_append_rolls_back_sale(persistent_engine, monkeypatch):
    engine = persistent_engine
    team = engine.create_team('Delhi Dynamos', budget=6000)
    player = engine.add_player('Rolled Back', 'Bowler', 'India', base_price=50)
    session = engine.start_auction(player.player_id)
    engine.place_bid(session.session_id, team.team_id, 75)

    def failing_append(entry):
        raise OSError("disk full")

    monkeypatch.setattr(engine.log_store, 'append_entry', failing_append)
    with pytest.raises(OSError):
        engine.finalize(session.session_id)

    restored = engine.state.players.get(player.player_id)
    assert restored.status == PlayerStatus.AVAILABLE
    assert restored.sold_price is None and restored.assigned_team is None
    assert engine.state.teams.get(team.team_id).remaining_budget == 6000
    assert engine.state.auction_log == []
    assert engine.current_session is session
    assert session.is_active
    assert session.final_price is None and session.completed_at is None
    assert session.leading_team_id == team.team_id
    engine.state.validate()

    monkeypatch.undo()
    entry = engine.finalize(session.session_id)
    assert entry.sold_price == 75
    assert len(engine.log_store.load_all_entries()) == 1


# ===== Invariants =====

def test_budget_invariant_holds_across_auctions(league, sell):
    engine = league['engine']
    team_a, team_b = league['team_a'], league['team_b']
    players = league['players']

    sell(engine, players['Rohan Mehta'], team_a, 30)
    sell(engine, players['Imran Qureshi'], team_b, 45)
    sell(engine, players['Dev Patel'], team_a, 50)

    session = engine.start_auction(players['Sam Carter'].player_id)
    engine.mark_unsold(session.session_id)

    for team in engine.state.teams:
        spent = sum(p.sold_price for p in engine.state.players.sold_to(team.team_id))
        assert team.remaining_budget == team.budget - spent
        assert team.remaining_budget >= 0

    assert engine.state.teams.get(team_a.team_id).remaining_budget == 20
    assert len(engine.state.auction_log) == 3
    engine.state.validate()


def test_team_cannot_overspend_across_sales(league, sell):
    engine = league['engine']
    team_a = league['team_a']
    players = league['players']

    sell(engine, players['Rohan Mehta'], team_a, 90)

    session = engine.start_auction(players['Dev Patel'].player_id)
    with pytest.raises(BudgetExceededError):
        engine.place_bid(session.session_id, team_a.team_id, 25)


def test_sold_price_never_below_base_price(league, sell):
    engine = league['engine']
    sell(engine, league['players']['Rohan Mehta'], league['team_a'], 25)

    for player in engine.state.players.with_status(PlayerStatus.SOLD):
        assert player.sold_price >= player.base_price


# ===== Admin CRUD =====

def test_duplicate_player_name_rejected(engine):
    engine.add_player('Virat Singh', 'Batsman', 'India', base_price=100)

    with pytest.raises(ValueError):
        engine.add_player('virat singh ', 'Batsman', 'India', base_price=100)


@pytest.mark.parametrize('base_price', [4, 2001])
def test_base_price_outside_limits_rejected(engine, base_price):
    with pytest.raises(ValueError):
        engine.add_player('Out Of Range', 'Batsman', 'India', base_price=base_price)


def test_invalid_role_rejected(engine):
    with pytest.raises(ValueError):
        engine.add_player('No Role', 'Umpire', 'India', base_price=20)


@pytest.mark.parametrize('field,value', [
    ('status', 'Sold'),
    ('sold_price', 100),
    ('assigned_team', 'abc'),
])
def test_engine_owned_player_fields_locked(engine, field, value):
    player = engine.add_player('Locked Player', 'Batsman', 'India', base_price=20)

    with pytest.raises(LockedFieldError):
        engine.update_player(player.player_id, **{field: value})

    assert engine.state.players.get(player.player_id).status == PlayerStatus.AVAILABLE


def test_update_player_moves_between_pools(engine):
    engine.create_pool('Marquee')
    engine.create_pool('Uncapped')
    player = engine.add_player('Mover', 'Bowler', 'India', base_price=20, pool='Marquee')

    engine.update_player(player.player_id, pool='Uncapped', evaluation_points=55)

    assert player.pool == 'Uncapped'
    assert player.evaluation_points == 55
    assert engine.state.pools.get('Marquee').player_ids == []
    assert engine.state.pools.get('Uncapped').player_ids == [player.player_id]

    engine.update_player(player.player_id, pool=None)
    assert player.pool is None
    assert player.status == PlayerStatus.AVAILABLE
    engine.state.validate()


def test_base_price_locked_once_sold(league, sell):
    engine = league['engine']
    player = league['players']['Rohan Mehta']
    sell(engine, player, league['team_a'], 30)

    with pytest.raises(LockedFieldError):
        engine.update_player(player.player_id, base_price=50)
    with pytest.raises(LockedFieldError):
        engine.delete_player(player.player_id)


def test_player_on_the_block_cannot_be_deleted(league):
    engine = league['engine']
    player = league['players']['Dev Patel']
    engine.start_auction(player.player_id)

    with pytest.raises(LockedFieldError):
        engine.delete_player(player.player_id)


def test_team_validation(engine):
    with pytest.raises(ValueError):
        engine.create_team('X')
    with pytest.raises(ValueError):
        engine.create_team('Budget Busters', budget=20000)
    with pytest.raises(ValueError):
        engine.create_team('Colourless', color_theme='blue')

    engine.create_team('Royal Strikers')
    with pytest.raises(ValueError):
        engine.create_team('ROYAL STRIKERS')


def test_remaining_budget_is_engine_owned(engine):
    team = engine.create_team('Kolkata Knights')

    with pytest.raises(LockedFieldError):
        engine.update_team(team.team_id, remaining_budget=1)


def test_budget_frozen_after_first_sale(engine, sell):
    team = engine.create_team('Punjab Panthers', budget=8000)
    other = engine.create_team('Rajasthan Rangers', budget=8000)
    player = engine.add_player('First Sale', 'Batsman', 'India', base_price=50)

    engine.update_team(other.team_id, budget=9000)
    assert engine.state.teams.get(other.team_id).remaining_budget == 9000

    sell(engine, player, team, 60)
    with pytest.raises(LockedFieldError):
        engine.update_team(other.team_id, budget=10000)

    engine.update_team(other.team_id, name='Rajasthan Royals', color_theme='#FF1493')
    assert engine.state.teams.get(other.team_id).name == 'Rajasthan Royals'


def test_team_with_sales_cannot_be_deleted(league, sell):
    engine = league['engine']
    sell(engine, league['players']['Rohan Mehta'], league['team_a'], 30)

    with pytest.raises(LockedFieldError):
        engine.delete_team(league['team_a'].team_id)

    engine.delete_team(league['team_b'].team_id)
    assert league['team_b'].team_id not in engine.state.teams


# ===== Pools =====

def test_locked_pool_rejects_membership_changes(engine):
    engine.create_pool('Marquee')
    player = engine.add_player('Locked In', 'Batsman', 'India', base_price=20, pool='Marquee')
    outsider = engine.add_player('Outsider', 'Bowler', 'India', base_price=20)
    engine.set_pool_status('Marquee', 'Locked')

    with pytest.raises(InvalidTransitionError):
        engine.assign_to_pool(outsider.player_id, 'Marquee')
    with pytest.raises(InvalidTransitionError):
        engine.remove_from_pool(player.player_id)
    with pytest.raises(InvalidTransitionError):
        engine.shuffle_pool('Marquee')

    assert engine.state.pools.get('Marquee').status == PoolStatus.LOCKED


def test_shuffle_only_reorders(engine):
    engine.create_pool('Capped')
    ids = [
        engine.add_player(f'Player {i}', 'Batsman', 'India', base_price=20, pool='Capped').player_id
        for i in range(10)
    ]
    before = {pid: engine.state.players.get(pid).to_dict() for pid in ids}

    pool = engine.shuffle_pool('Capped', seed=7)

    assert sorted(pool.player_ids) == sorted(ids)
    assert {pid: engine.state.players.get(pid).to_dict() for pid in ids} == before


def test_duplicate_pool_name_rejected(engine):
    engine.create_pool('Marquee')

    with pytest.raises(ValueError):
        engine.create_pool('Marquee')


def test_unknown_pool_status_rejected(engine):
    engine.create_pool('Marquee')

    with pytest.raises(ValueError):
        engine.set_pool_status('Marquee', 'Archived')
