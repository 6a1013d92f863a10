from cricket_auction.auction.leaderboard import (
    calculate_leaderboard,
    get_dashboard_stats,
    get_team_summary,
    top_buys,
)


def test_leaderboard_ranks_by_points_then_spend(league, sell):
    engine = league['engine']
    players = league['players']

    sell(engine, players['Dev Patel'], league['team_a'], 50)       # 90 pts
    sell(engine, players['Rohan Mehta'], league['team_b'], 25)     # 80 pts
    sell(engine, players['Sam Carter'], league['team_b'], 25)      # 60 pts

    rows = calculate_leaderboard(engine.snapshot())

    assert [r['team_name'] for r in rows] == ['Team B', 'Team A']
    assert rows[0]['rank'] == 1
    assert rows[0]['total_points'] == 140
    assert rows[0]['players_count'] == 2
    assert rows[0]['total_spent'] == 50
    assert rows[0]['remaining_budget'] == 50
    assert rows[0]['average_price'] == 25.0
    assert rows[1]['total_points'] == 90


def test_leaderboard_tie_broken_by_lower_spend(league, sell):
    engine = league['engine']
    players = league['players']

    engine.update_player(players['Imran Qureshi'].player_id, evaluation_points=80)
    sell(engine, players['Rohan Mehta'], league['team_a'], 60)
    sell(engine, players['Imran Qureshi'], league['team_b'], 30)

    rows = calculate_leaderboard(engine.snapshot())
    assert [r['team_name'] for r in rows] == ['Team B', 'Team A']


def test_aggregates_are_idempotent(league, sell):
    engine = league['engine']
    sell(engine, league['players']['Dev Patel'], league['team_a'], 50)
    state = engine.snapshot()

    assert calculate_leaderboard(state) == calculate_leaderboard(state)
    assert get_dashboard_stats(state) == get_dashboard_stats(state)
    assert top_buys(state) == top_buys(state)


def test_dashboard_status_progression(league, sell):
    engine = league['engine']
    players = list(league['players'].values())

    assert get_dashboard_stats(engine.snapshot())['auction_status'] == 'Not Started'

    session = engine.start_auction(players[0].player_id)
    stats = get_dashboard_stats(engine.snapshot())
    assert stats['auction_status'] == 'Active'
    assert stats['active_auctions'] == 1

    engine.mark_unsold(session.session_id)
    assert get_dashboard_stats(engine.snapshot())['auction_status'] == 'In Progress'

    for player in players[1:]:
        sell(engine, player, league['team_a'], 25)

    stats = get_dashboard_stats(engine.snapshot())
    assert stats['auction_status'] == 'Completed'
    assert stats['players_sold'] == 3
    assert stats['players_unsold'] == 1
    assert stats['total_spent'] == 75
    assert stats['total_budget'] == 200


def test_team_summary_frame(league, sell):
    engine = league['engine']
    sell(engine, league['players']['Dev Patel'], league['team_b'], 35)

    df = get_team_summary(engine.snapshot())

    assert list(df['team_name']) == ['Team A', 'Team B']
    assert df.loc[df['team_name'] == 'Team B', 'spent'].iloc[0] == 35
    assert df.loc[df['team_name'] == 'Team A', 'players'].iloc[0] == 0


def test_top_buys_most_expensive_first(league, sell):
    engine = league['engine']
    players = league['players']
    sell(engine, players['Rohan Mehta'], league['team_a'], 25)
    sell(engine, players['Dev Patel'], league['team_b'], 70)

    buys = top_buys(engine.snapshot(), limit=1)

    assert len(buys) == 1
    assert buys[0]['player_name'] == 'Dev Patel'
    assert buys[0]['team_name'] == 'Team B'
