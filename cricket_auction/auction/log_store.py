"""
Append-only storage for the auction log.

Uses JSONL (JSON Lines): each line is one completed sale. The file is the
durable source of truth for sales; the engine replays entries missing from
its checkpoint when it starts up.
"""

import json
import logging
import os
from pathlib import Path
from typing import List

from .models import AuctionLogEntry

logger = logging.getLogger(__name__)


class AuctionLogStore:
    """Append-only log of completed sales."""

    def __init__(self, filepath: Path):
        """
        Initialize log store.

        Args:
            filepath: Path to JSONL file for log storage
        """
        self.filepath = Path(filepath)
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def append_entry(self, entry: AuctionLogEntry) -> None:
        """
        Append a single sale to the log.

        Args:
            entry: AuctionLogEntry to append

        The line is synced before returning so a committed sale survives a
        crash. If the write or the sync fails the file is truncated back to
        its previous length and the error is re-raised, so a failed append
        never leaves a line behind for replay.
        """
        line = (entry.to_json() + '\n').encode('utf-8')
        with open(self.filepath, 'ab', buffering=0) as f:
            pos = f.seek(0, os.SEEK_END)
            try:
                written = f.write(line)
                if written != len(line):
                    raise OSError(f"Short write to {self.filepath}: {written} of {len(line)} bytes")
                os.fsync(f.fileno())
            except Exception:
                logger.error(f"Append of log entry {entry.log_id} failed, truncating to {pos} bytes")
                f.truncate(pos)
                raise
        logger.debug(f"Appended log entry {entry.log_id}: {entry.player_id} -> {entry.team_id}")

    def load_all_entries(self) -> List[AuctionLogEntry]:
        """
        Load the complete log.

        Returns:
            List of AuctionLogEntry in write order

        Returns empty list if file doesn't exist.
        """
        if not self.filepath.exists():
            logger.debug(f"Auction log file does not exist: {self.filepath}")
            return []

        entries = []
        with open(self.filepath, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    entries.append(AuctionLogEntry.from_json(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    # A torn final line is what a crash mid-append leaves behind
                    logger.error(
                        f"Failed to parse log entry at line {line_num}: {e}\n"
                        f"Line content: {line}"
                    )

        logger.info(f"Loaded {len(entries)} log entries from {self.filepath}")
        return entries
