import pandas as pd
import pytest

from cricket_auction.auction.models import PlayerRole, PlayerStatus
from cricket_auction.roster_loader import (
    RosterLoader,
    find_near_duplicates,
    import_players,
    normalize_columns,
    normalize_role,
)


@pytest.fixture
def roster_csv(tmp_path):
    path = tmp_path / 'players.csv'
    path.write_text(
        "Player Name,Role,Country,Base Price,Age,Points,Pool\n"
        "Arjun Rao,Batter,India,₹1.5Cr,27,88,Marquee\n"
        "Ben Ellis,bowler,England,50L,31,72,Overseas\n"
        "Kiran Das,WK,India,75,22,64,\n"
        ",Batsman,India,20,20,10,\n"
        "Leo Grant,All-rounder,Australia,n/a,29,70,Overseas\n",
        encoding='utf-8'
    )
    return path


def test_normalize_columns_maps_aliases():
    df = pd.DataFrame(columns=['Player Name', ' ROLE ', 'Base Price (Cr)', 'Rating'])

    renamed, unit = normalize_columns(df)

    assert list(renamed.columns) == ['name', 'role', 'base_price', 'evaluation_points']
    assert unit == 'crore'


@pytest.mark.parametrize('raw,expected', [
    ('Batter', 'Batsman'),
    ('wk', 'Wicket-keeper'),
    ('All Rounder', 'All-rounder'),
    ('wicket_keeper', 'Wicket-keeper'),
    ('Umpire', None),
    (None, None),
])
def test_normalize_role(raw, expected):
    assert normalize_role(raw) == expected


def test_reader_cleans_rows(roster_csv):
    df = RosterLoader(roster_csv).read()

    assert list(df['name']) == ['Arjun Rao', 'Ben Ellis', 'Kiran Das', 'Leo Grant']
    assert df.loc[0, 'base_price'] == 150
    assert df.loc[1, 'base_price'] == 50
    assert df.loc[2, 'pool'] is None
    assert pd.isna(df.loc[3, 'base_price'])


def test_import_creates_players_and_pools(engine, roster_csv):
    result = import_players(engine, roster_csv, default_pool='Uncapped')

    assert [p.name for p in result.created] == ['Arjun Rao', 'Ben Ellis', 'Kiran Das']
    assert [s['name'] for s in result.skipped] == ['Leo Grant']

    arjun = engine.state.players.find_by_name('Arjun Rao')
    assert arjun.base_price == 150
    assert arjun.role == PlayerRole.BATSMAN
    assert arjun.pool == 'Marquee'
    assert arjun.status == PlayerStatus.POOLED

    kiran = engine.state.players.find_by_name('Kiran Das')
    assert kiran.role == PlayerRole.WICKET_KEEPER
    assert kiran.pool == 'Uncapped'

    assert {p.name for p in engine.state.pools} == {'Marquee', 'Overseas', 'Uncapped'}
    engine.state.validate()


def test_reimport_skips_existing_names(engine, roster_csv):
    import_players(engine, roster_csv)
    result = import_players(engine, roster_csv)

    assert result.created == []
    assert len(engine.state.players) == 3


def test_import_reads_engine_state_from_one_snapshot(engine, roster_csv, monkeypatch):
    engine.create_pool('Marquee')
    real_snapshot = engine.snapshot
    calls = []

    def counting_snapshot():
        calls.append(1)
        return real_snapshot()

    monkeypatch.setattr(engine, 'snapshot', counting_snapshot)
    result = import_players(engine, roster_csv)

    assert len(calls) == 1
    assert len(result.created) == 3
    arjun = engine.state.players.find_by_name('Arjun Rao')
    assert engine.state.pools.get('Marquee').player_ids == [arjun.player_id]


def test_near_duplicate_names_flagged():
    pairs = find_near_duplicates(['Arjun Rao', 'Rao Arjun', 'Ben Ellis', 'arjun rao'])

    assert ('Arjun Rao', 'Rao Arjun', 100) in pairs
    assert all('Ben Ellis' not in pair for pair in pairs)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        RosterLoader(tmp_path / 'absent.csv').read()


def test_roster_without_name_column(tmp_path):
    path = tmp_path / 'bad.csv'
    path.write_text("Role,Country\nBatsman,India\n", encoding='utf-8')

    with pytest.raises(ValueError):
        RosterLoader(path).read()
