"""
Generate CSV exports of auction results.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from . import config
from .auction.ledgers import AuctionState
from .auction.models import PlayerStatus
from .currency import format_lakhs

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'player_name', 'role', 'country', 'pool', 'status', 'team',
    'base_price', 'sold_price', 'base_price_display', 'sold_price_display',
    'evaluation_points',
]

LOG_COLUMNS = ['timestamp', 'player_name', 'team', 'sold_price', 'sold_price_display', 'log_id']

# Export order: sold, then unsold, then players not yet auctioned
_STATUS_ORDER = {
    PlayerStatus.SOLD.value: 0,
    PlayerStatus.UNSOLD.value: 1,
    PlayerStatus.POOLED.value: 2,
    PlayerStatus.AVAILABLE.value: 2,
}


class OutputWriter:
    """Writes auction results to CSV files."""

    def __init__(self, output_dir: str = None):
        """
        Initialize the output writer.

        Args:
            output_dir: Directory to write output files (default from config)
        """
        self.output_dir = Path(output_dir or config.EXPORT_DIR)

    def build_results_frame(self, state: AuctionState) -> pd.DataFrame:
        """
        One row per player, sold players grouped by team.

        Args:
            state: Auction state (or snapshot)

        Returns:
            DataFrame with RESULT_COLUMNS, sorted sold (by team, then price
            descending), unsold, then pending (by name)
        """
        team_names = {team.team_id: team.name for team in state.teams}

        rows = []
        for player in state.players:
            rows.append({
                'player_name': player.name,
                'role': player.role.value,
                'country': player.country,
                'pool': player.pool or '',
                'status': player.status.value,
                'team': team_names.get(player.assigned_team, '') if player.assigned_team else '',
                'base_price': player.base_price,
                'sold_price': player.sold_price,
                'base_price_display': format_lakhs(player.base_price),
                'sold_price_display': format_lakhs(player.sold_price) if player.sold_price is not None else '',
                'evaluation_points': player.evaluation_points,
            })

        df = pd.DataFrame(rows, columns=RESULT_COLUMNS)
        if df.empty:
            return df

        df['_group'] = df['status'].map(_STATUS_ORDER)
        df['_price'] = df['sold_price'].fillna(0)
        df = df.sort_values(
            ['_group', 'team', '_price', 'player_name'],
            ascending=[True, True, False, True]
        )
        df['sold_price'] = df['sold_price'].astype('Int64')
        return df.drop(columns=['_group', '_price']).reset_index(drop=True)

    def build_log_frame(self, state: AuctionState) -> pd.DataFrame:
        """
        The auction log with player and team names, in commit order.
        """
        team_names = {team.team_id: team.name for team in state.teams}

        rows = []
        for entry in state.auction_log:
            player_name = state.players.get(entry.player_id).name if entry.player_id in state.players else ''
            rows.append({
                'timestamp': entry.timestamp.isoformat(),
                'player_name': player_name,
                'team': team_names.get(entry.team_id, ''),
                'sold_price': entry.sold_price,
                'sold_price_display': format_lakhs(entry.sold_price),
                'log_id': entry.log_id,
            })

        return pd.DataFrame(rows, columns=LOG_COLUMNS)

    def write_csv(self,
                  df: pd.DataFrame,
                  filename: str = None,
                  include_timestamp: bool = True) -> Path:
        """
        Write DataFrame to CSV file.

        Args:
            df: DataFrame to write
            filename: Output filename (default: auction_results_<timestamp>.csv)
            include_timestamp: Whether to include timestamp in filename

        Returns:
            Path to output file
        """
        if filename is None:
            if include_timestamp:
                timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
                filename = f"auction_results_{timestamp}.csv"
            else:
                filename = "auction_results.csv"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / filename

        df.to_csv(output_path, index=False)

        logger.info(f"Output written to: {output_path} ({len(df)} rows)")
        return output_path


def write_results(state: AuctionState,
                  output_dir: Optional[str] = None,
                  include_log: bool = True) -> Dict[str, Path]:
    """
    Convenience function to export results (and optionally the auction log).

    Args:
        state: Auction state (or snapshot)
        output_dir: Export directory (default from config)
        include_log: Also write the auction log CSV

    Returns:
        Dictionary with paths to output files ('results', and 'log' if written)
    """
    writer = OutputWriter(output_dir)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    paths = {
        'results': writer.write_csv(
            writer.build_results_frame(state),
            f"auction_results_{timestamp}.csv",
            include_timestamp=False
        )
    }
    if include_log:
        paths['log'] = writer.write_csv(
            writer.build_log_frame(state),
            f"auction_log_{timestamp}.csv",
            include_timestamp=False
        )
    return paths
