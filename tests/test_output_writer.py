import pandas as pd

from cricket_auction.output_writer import OutputWriter, write_results


def test_results_grouped_sold_unsold_pending(league, sell):
    engine = league['engine']
    players = league['players']

    sell(engine, players['Dev Patel'], league['team_b'], 60)
    sell(engine, players['Rohan Mehta'], league['team_a'], 30)
    session = engine.start_auction(players['Imran Qureshi'].player_id)
    engine.mark_unsold(session.session_id)

    df = OutputWriter().build_results_frame(engine.snapshot())

    assert list(df['player_name']) == ['Rohan Mehta', 'Dev Patel', 'Imran Qureshi', 'Sam Carter']
    assert list(df['status']) == ['Sold', 'Sold', 'Unsold', 'Available']
    assert list(df['team'][:2]) == ['Team A', 'Team B']
    assert df.loc[1, 'sold_price'] == 60
    assert df.loc[1, 'sold_price_display'] == '₹60L'
    assert pd.isna(df.loc[3, 'sold_price'])


def test_empty_auction_exports_header_only(engine):
    df = OutputWriter().build_results_frame(engine.snapshot())

    assert df.empty
    assert 'sold_price' in df.columns


def test_write_results_creates_files(league, sell, tmp_path):
    engine = league['engine']
    sell(engine, league['players']['Sam Carter'], league['team_a'], 25)

    paths = write_results(engine.snapshot(), output_dir=tmp_path)

    results = pd.read_csv(paths['results'])
    log = pd.read_csv(paths['log'])
    assert len(results) == 4
    assert list(log['player_name']) == ['Sam Carter']
    assert list(log['sold_price']) == [25]
