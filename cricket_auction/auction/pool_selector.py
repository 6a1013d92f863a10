"""
Pool selection helpers.

Answers "who is next?" for a pool. Everything here reads a state snapshot
and never writes; picking a player does not start an auction.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .ledgers import AuctionState
from .models import Player, PlayerStatus

logger = logging.getLogger(__name__)


def eligible_players(
    state: AuctionState,
    pool_name: str,
    include_unsold: bool = False
) -> List[Player]:
    """
    Players in a pool who can still be auctioned, in pool order.

    Args:
        state: Auction state (or snapshot)
        pool_name: Pool to read
        include_unsold: Also return players who went unsold earlier (re-auction round)

    Returns:
        List of Players

    Raises:
        NotFoundError: If the pool does not exist
    """
    pool = state.pools.get(pool_name)

    statuses = {PlayerStatus.AVAILABLE, PlayerStatus.POOLED}
    if include_unsold:
        statuses.add(PlayerStatus.UNSOLD)

    active = state.active_session
    on_block = active.player_id if active is not None else None

    players = []
    for player_id in pool.player_ids:
        if player_id not in state.players or player_id == on_block:
            continue
        player = state.players.get(player_id)
        if player.status in statuses:
            players.append(player)

    logger.debug(f"Pool '{pool_name}': {len(players)} eligible of {len(pool.player_ids)}")
    return players


def next_player(
    state: AuctionState,
    pool_name: str,
    include_unsold: bool = False,
    random_pick: bool = False,
    seed: Optional[int] = None
) -> Optional[Player]:
    """
    Choose the next player to auction from a pool.

    Args:
        state: Auction state (or snapshot)
        pool_name: Pool to pick from
        include_unsold: Consider previously unsold players too
        random_pick: Pick at random instead of taking the first in pool order
        seed: Random seed, for reproducible draws

    Returns:
        The chosen Player, or None if the pool is exhausted
    """
    candidates = eligible_players(state, pool_name, include_unsold=include_unsold)
    if not candidates:
        logger.info(f"Pool '{pool_name}' has no players left to auction")
        return None

    if random_pick:
        rng = np.random.default_rng(seed)
        return candidates[int(rng.integers(len(candidates)))]

    return candidates[0]


def pool_stats(state: AuctionState, pool_name: str) -> Dict:
    """
    Summary counts for a pool.

    Returns:
        Dict with player_count, total_base_value (lakhs), sold_count,
        unsold_count, available_count and sold_value (lakhs)
    """
    pool = state.pools.get(pool_name)
    players = [state.players.get(pid) for pid in pool.player_ids if pid in state.players]

    sold = [p for p in players if p.status == PlayerStatus.SOLD]
    return {
        'pool_name': pool.name,
        'status': pool.status.value,
        'visibility': pool.visibility.value,
        'player_count': len(players),
        'total_base_value': sum(p.base_price for p in players),
        'sold_count': len(sold),
        'sold_value': sum(p.sold_price for p in sold),
        'unsold_count': sum(1 for p in players if p.status == PlayerStatus.UNSOLD),
        'available_count': sum(
            1 for p in players if p.status in (PlayerStatus.AVAILABLE, PlayerStatus.POOLED)
        ),
    }
