"""Caller identity and board access rules.

A caller may read and mutate a board when they own it or are one of its
members. Owner-only operations (renaming or deleting a board, managing its
members) use :func:`require_owner`.
"""

from __future__ import annotations

import logging

from fastapi import Header, HTTPException

from .db import Board
from .errors import AccessDenied

logger = logging.getLogger(__name__)


def get_current_user(authorization: str = Header(default="")) -> str:
    """Resolve the caller from an ``Authorization: Bearer <user-id>`` header.

    Session handling and token issuance happen upstream; the bearer value is
    the already-resolved user id.
    """
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise HTTPException(status_code=401, detail="invalid_token")
    user_id = authorization[len(prefix) :].strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="invalid_token")
    return user_id


def can_access(board: Board, user_id: str) -> bool:
    return user_id == board.owner or user_id in board.members


def require_access(board: Board, user_id: str) -> None:
    if not can_access(board, user_id):
        logger.debug("Access denied: user=%s board=%s", user_id, board.id)
        raise AccessDenied("Access denied", {"boardId": board.id})


def require_owner(board: Board, user_id: str) -> None:
    if user_id != board.owner:
        logger.debug("Owner check failed: user=%s board=%s", user_id, board.id)
        raise AccessDenied("Not authorized", {"boardId": board.id})
