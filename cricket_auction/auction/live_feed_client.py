"""
Viewer client for the auction live feed.

Polls GET /auction/live on a running server and reports changes, so a
projector screen or second terminal can follow the auction.
"""

import logging
import time
from typing import Callable, Dict, Optional

import requests

from .. import config

logger = logging.getLogger(__name__)


class LiveFeedClient:
    """Client for polling the auction live feed."""

    def __init__(self, base_url: str, timeout: int = 10):
        """
        Initialize the feed client.

        Args:
            base_url: Server root, e.g. http://127.0.0.1:8000
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        # Session for connection pooling
        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/json'

    def fetch_live_state(self) -> Dict:
        """
        Fetch the current live feed payload.

        Returns:
            Parsed JSON from /auction/live

        Raises:
            requests.RequestException: After all retries exhausted
        """
        endpoint = f"{self.base_url}/auction/live"
        try:
            return self._make_request(endpoint)
        except requests.RequestException as e:
            logger.error(f"Failed to fetch live feed: {e}")
            raise

    def watch(
        self,
        callback: Callable[[Dict], None],
        poll_interval: float = config.FRONTEND_AUTO_REFRESH_INTERVAL,
        max_polls: Optional[int] = None
    ) -> int:
        """
        Poll the feed and call back whenever it changes.

        The first successful poll always triggers the callback. A change in
        updated_at alone does not count as a change.

        Args:
            callback: Called with the full payload on change
            poll_interval: Seconds between polls
            max_polls: Stop after this many polls (None = until interrupted)

        Returns:
            Number of times the callback was called
        """
        last_seen = None
        changes = 0
        polls = 0

        try:
            while max_polls is None or polls < max_polls:
                polls += 1
                try:
                    payload = self.fetch_live_state()
                except requests.RequestException:
                    logger.warning(f"Live feed unavailable, retrying in {poll_interval}s")
                else:
                    comparable = {k: v for k, v in payload.items() if k != 'updated_at'}
                    if comparable != last_seen:
                        last_seen = comparable
                        changes += 1
                        callback(payload)

                if max_polls is None or polls < max_polls:
                    time.sleep(poll_interval)

        except KeyboardInterrupt:
            logger.info("Stopped watching live feed")

        return changes

    def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict] = None,
        max_retries: int = 3
    ) -> Dict:
        """
        Make HTTP GET request with retries.

        Args:
            endpoint: Full URL endpoint
            params: Query parameters
            max_retries: Maximum retry attempts on failure

        Returns:
            Parsed JSON response

        Raises:
            requests.RequestException: After all retries exhausted
        """
        for attempt in range(1, max_retries + 1):
            try:
                logger.debug(f"GET {endpoint} (attempt {attempt}/{max_retries})")
                response = self.session.get(endpoint, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except requests.Timeout:
                logger.warning(f"Request timeout (attempt {attempt}/{max_retries})")
                if attempt == max_retries:
                    raise
                time.sleep(2 ** attempt)  # Exponential backoff

            except requests.RequestException as e:
                logger.error(f"Request failed (attempt {attempt}/{max_retries}): {e}")
                if attempt == max_retries:
                    raise
                time.sleep(2 ** attempt)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()


def format_feed(payload: Dict) -> str:
    """
    Render a live feed payload as a few lines of text for the terminal.

    Args:
        payload: JSON from /auction/live

    Returns:
        Multi-line summary string
    """
    lines = []
    current = payload.get('current_auction')
    if current:
        player = current.get('player') or {}
        leader = current.get('leading_team_name') or 'no bids'
        lines.append(
            f"ON THE BLOCK: {player.get('name', current['player_id'])} "
            f"({player.get('role', '?')}) - {current['current_bid_display']} [{leader}]"
        )
    else:
        lines.append("No auction in progress")

    for sale in payload.get('recent_sales', [])[:3]:
        lines.append(f"  SOLD {sale.get('player_name')} -> {sale.get('team_name')} {sale['sold_price_display']}")

    for team in payload.get('teams', []):
        lines.append(
            f"  {team['name']:<25} {team['players_count']:>3} players  "
            f"{team['remaining_budget_display']:>10} left"
        )
    return '\n'.join(lines)
