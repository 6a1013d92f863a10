"""
Load a player roster from CSV or Excel and register it with the engine.

Column headers are matched loosely (see config.COLUMN_ALIASES), prices are
read from strings like '₹1.5Cr' or '50L', and near-duplicate names are
flagged with fuzzy matching so the admin can review them.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from fuzzywuzzy import fuzz
from tqdm import tqdm

from . import config
from .auction.errors import AuctionError
from .auction.models import Player
from .auction.transaction_engine import AuctionTransactionEngine
from .currency import parse_price

logger = logging.getLogger(__name__)

ROLE_ALIASES = {
    'batsman': 'Batsman',
    'batter': 'Batsman',
    'bat': 'Batsman',
    'bowler': 'Bowler',
    'bowl': 'Bowler',
    'all-rounder': 'All-rounder',
    'all rounder': 'All-rounder',
    'allrounder': 'All-rounder',
    'ar': 'All-rounder',
    'wicket-keeper': 'Wicket-keeper',
    'wicket keeper': 'Wicket-keeper',
    'wicketkeeper': 'Wicket-keeper',
    'keeper': 'Wicket-keeper',
    'wk': 'Wicket-keeper',
}


@dataclass
class ImportResult:
    """Outcome of a roster import."""

    created: List[Player] = field(default_factory=list)
    skipped: List[Dict] = field(default_factory=list)          # {'row', 'name', 'reason'}
    near_duplicates: List[Tuple[str, str, int]] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{len(self.created)} imported, {len(self.skipped)} skipped, "
            f"{len(self.near_duplicates)} possible duplicate(s)"
        )


def normalize_columns(df: pd.DataFrame) -> Tuple[pd.DataFrame, str]:
    """
    Rename recognised headers to field names.

    Args:
        df: Raw DataFrame as read from the file

    Returns:
        Tuple of (renamed DataFrame, price unit for bare numbers: 'lakh' or 'crore')
    """
    df = df.copy()
    df.columns = df.columns.astype(str).str.strip().str.lower()
    logger.debug(f"Detected columns: {list(df.columns)}")

    price_unit = 'lakh'
    new_cols = {}
    for field_name, aliases in config.COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in df.columns and alias not in new_cols:
                new_cols[alias] = field_name
                if field_name == 'base_price' and '(cr)' in alias:
                    price_unit = 'crore'
                break

    df = df.rename(columns=new_cols)
    logger.debug(f"Mapped columns: {list(df.columns)} (bare prices in {price_unit}s)")
    return df, price_unit


def normalize_role(value) -> Optional[str]:
    """Map a free-text role to one of config.PLAYER_ROLES, or None."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    key = str(value).strip().lower().replace('_', ' ')
    return ROLE_ALIASES.get(key) or ROLE_ALIASES.get(key.replace(' ', '-'))


def find_near_duplicates(
    names: List[str],
    threshold: int = config.DUPLICATE_NAME_THRESHOLD
) -> List[Tuple[str, str, int]]:
    """
    Find pairs of names that are probably the same player.

    Args:
        names: Player names
        threshold: Minimum token_sort_ratio score (0-100) to report

    Returns:
        List of (name_a, name_b, score) for distinct names scoring >= threshold
    """
    pairs = []
    for i, first in enumerate(names):
        for second in names[i + 1:]:
            if first.strip().lower() == second.strip().lower():
                continue
            score = fuzz.token_sort_ratio(first, second)
            if score >= threshold:
                pairs.append((first, second, score))
    return pairs


class RosterLoader:
    """Reads and cleans a roster file."""

    def __init__(self, roster_file: str):
        """
        Args:
            roster_file: Path to a .csv, .xls or .xlsx file
        """
        self.roster_file = Path(roster_file)

    def read(self) -> pd.DataFrame:
        """
        Read the file and normalise columns and values.

        Returns:
            DataFrame with columns name, role, country, base_price, age,
            evaluation_points, pool, bio, performance_stats (missing columns
            are filled with defaults; unparseable prices become NaN)

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If no name column can be found
        """
        if not self.roster_file.exists():
            raise FileNotFoundError(f"Roster file not found: {self.roster_file}")

        if self.roster_file.suffix.lower() in ('.xls', '.xlsx'):
            df = pd.read_excel(self.roster_file)
        else:
            df = pd.read_csv(self.roster_file)

        df, price_unit = normalize_columns(df)

        if 'name' not in df.columns:
            raise ValueError("Roster must have a 'Name' (or 'Player Name') column")

        df = df.dropna(subset=['name']).copy()
        df['name'] = df['name'].astype(str).str.strip()
        df = df[df['name'] != ''].copy()

        if 'base_price' in df.columns:
            df['base_price'] = df['base_price'].apply(lambda v: _safe_price(v, price_unit))
        else:
            df['base_price'] = config.DEFAULT_BASE_PRICE

        for numeric in ('age', 'evaluation_points'):
            if numeric in df.columns:
                df[numeric] = pd.to_numeric(df[numeric], errors='coerce').fillna(0).astype(int)
            else:
                df[numeric] = 0

        df['role'] = df['role'].apply(normalize_role) if 'role' in df.columns else None
        if 'country' not in df.columns:
            df['country'] = config.DEFAULT_COUNTRY
        df['country'] = df['country'].fillna(config.DEFAULT_COUNTRY).astype(str).str.strip()

        for optional in ('pool', 'bio', 'performance_stats'):
            if optional not in df.columns:
                df[optional] = None
            values = df[optional].astype(object)
            df[optional] = values.where(values.notna(), None)

        logger.info(f"Read {len(df)} roster rows from {self.roster_file}")
        return df.reset_index(drop=True)


def _safe_price(value, price_unit: str) -> Optional[int]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    try:
        return parse_price(value, default_unit=price_unit)
    except ValueError:
        return None


def import_players(
    engine: AuctionTransactionEngine,
    roster_file: str,
    default_pool: Optional[str] = None
) -> ImportResult:
    """
    Import a roster file into the engine.

    Rows are skipped (and reported) when the name duplicates an existing
    player, the price is missing or out of range, or the engine rejects the
    row. Pools named in a 'pool' column are created on demand.

    Args:
        engine: Engine to add players to
        roster_file: CSV/Excel path
        default_pool: Pool for rows that do not name one

    Returns:
        ImportResult
    """
    df = RosterLoader(roster_file).read()
    result = ImportResult()

    snapshot = engine.snapshot()
    existing_names = [p.name for p in snapshot.players]
    known_pools = {p.name for p in snapshot.pools}
    result.near_duplicates = find_near_duplicates(existing_names + df['name'].tolist())
    for first, second, score in result.near_duplicates:
        logger.warning(f"Possible duplicate players: '{first}' / '{second}' ({score}%)")

    for row_num, row in tqdm(df.iterrows(), total=len(df), desc="Importing players"):
        name = row['name']

        if row['base_price'] is None or pd.isna(row['base_price']):
            result.skipped.append({'row': row_num, 'name': name, 'reason': 'missing or invalid base price'})
            continue

        role = row['role']
        if role is None:
            logger.warning(f"Row {row_num} ({name}): unknown role, using {config.DEFAULT_PLAYER_ROLE}")
            role = config.DEFAULT_PLAYER_ROLE

        pool = str(row['pool']).strip() if row['pool'] is not None else ''
        pool = pool or default_pool
        try:
            if pool is not None and pool not in known_pools:
                engine.create_pool(pool)
                known_pools.add(pool)

            player = engine.add_player(
                name=name,
                role=role,
                country=row['country'],
                base_price=int(row['base_price']),
                age=int(row['age']),
                evaluation_points=int(row['evaluation_points']),
                bio=row['bio'],
                performance_stats=row['performance_stats'],
                pool=pool,
            )
            result.created.append(player)
        except (ValueError, AuctionError) as e:
            logger.warning(f"Row {row_num} ({name}) skipped: {e}")
            result.skipped.append({'row': row_num, 'name': name, 'reason': str(e)})

    logger.info(f"Roster import from {roster_file}: {result.summary()}")
    return result
