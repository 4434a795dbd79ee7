from __future__ import annotations

import logging

from .access import require_access
from .db import Board, Card, ListModel
from .ordering import is_dense
from .schemas import BoardOut, BoardView, CardOut, ListOut, ListView
from .storage import Storage

logger = logging.getLogger(__name__)


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        title=board.title,
        description=board.description,
        owner=board.owner,
        members=sorted(board.members),
        createdAt=board.created_at,
        updatedAt=board.updated_at,
    )


def list_out(lst: ListModel) -> ListOut:
    return ListOut(
        id=lst.id,
        boardId=lst.board_id,
        title=lst.title,
        position=lst.position,
        createdAt=lst.created_at,
        updatedAt=lst.updated_at,
    )


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        listId=card.list_id,
        title=card.title,
        description=card.description,
        position=card.position,
        createdAt=card.created_at,
        updatedAt=card.updated_at,
    )


def get_board_view(storage: Storage, board_id: str, user_id: str) -> BoardView:
    """Materialize a board with its lists and cards, each sorted by position."""
    with storage.transaction():
        board = storage.get_board(board_id)
        require_access(board, user_id)
        lists = sorted(board.lists, key=lambda x: (x.position, x.created_at, x.id))
        if not is_dense(lists):
            logger.warning("Board %s has non-dense list positions", board.id)
        views = []
        for lst in lists:
            cards = sorted(lst.cards, key=lambda c: (c.position, c.created_at, c.id))
            if not is_dense(cards):
                logger.warning("List %s has non-dense card positions", lst.id)
            views.append(ListView(**list_out(lst).model_dump(), cards=[card_out(c) for c in cards]))
        return BoardView(**board_out(board).model_dump(), lists=views)
