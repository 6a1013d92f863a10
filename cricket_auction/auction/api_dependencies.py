"""
Shared FastAPI plumbing: the engine dependency and error-to-status mapping.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from fastapi import HTTPException

from .. import config
from .errors import (
    AuctionError,
    BudgetExceededError,
    ConflictError,
    InvalidTransitionError,
    LockedFieldError,
    NotFoundError,
    PoolNotEmptyError,
    StaleBidError,
)
from .transaction_engine import AuctionTransactionEngine

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ConflictError: 409,
    StaleBidError: 409,
    PoolNotEmptyError: 409,
    BudgetExceededError: 400,
    InvalidTransitionError: 400,
    LockedFieldError: 400,
    NotFoundError: 404,
}

_engine: Optional[AuctionTransactionEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> AuctionTransactionEngine:
    """Get the process-wide engine, opening the data directory on first use."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = AuctionTransactionEngine.open(Path(config.AUCTION_DATA_DIR))
        return _engine


def set_engine(engine: Optional[AuctionTransactionEngine]) -> None:
    """Replace the process-wide engine (CLI --serve with a custom data dir)."""
    global _engine
    with _engine_lock:
        _engine = engine


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Map an engine error to an HTTPException.

    Args:
        error: AuctionError or ValueError raised by the engine
        action: Short description for the log line

    Returns:
        HTTPException with the matching status code and the error message as detail
    """
    if isinstance(error, AuctionError):
        status_code = 500
        for error_type, code in ERROR_STATUS_CODES.items():
            if isinstance(error, error_type):
                status_code = code
                break
    elif isinstance(error, ValueError):
        status_code = 422
    else:
        status_code = 500

    if status_code == 500:
        logger.error(f"Failed to {action}: {error}", exc_info=True)
    else:
        logger.warning(f"Cannot {action}: {error}")

    return HTTPException(status_code=status_code, detail=str(error))
