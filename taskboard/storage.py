from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .access import require_access, require_owner
from .db import Board, BoardMembership, Card, ListModel, now_utc
from .errors import Conflict, NotFound, StoreFailure, ValidationError

logger = logging.getLogger(__name__)


class Storage:
    """SQLAlchemy-backed store for boards, lists and cards.

    One ``Storage`` wraps one session. Every operation runs inside
    :meth:`transaction` so its writes commit together or not at all.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning("Concurrent modification detected: %s", exc)
            raise Conflict("The board changed while the request was applied") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store failure")
            raise StoreFailure("Store failure") from exc
        except Exception:
            self.session.rollback()
            raise

    # === Lookups ===
    def get_board(self, board_id: str) -> Board:
        board = self.session.get(Board, board_id)
        if board is None:
            logger.debug("Board not found: %s", board_id)
            raise NotFound("Board", board_id)
        return board

    def get_list(self, list_id: str) -> ListModel:
        lst = self.session.get(ListModel, list_id)
        if lst is None:
            logger.debug("List not found: %s", list_id)
            raise NotFound("List", list_id)
        return lst

    def get_card(self, card_id: str) -> Card:
        card = self.session.get(Card, card_id)
        if card is None:
            logger.debug("Card not found: %s", card_id)
            raise NotFound("Card", card_id)
        return card

    def boards_for_user(self, user_id: str) -> List[Board]:
        member_of = select(BoardMembership.board_id).where(BoardMembership.user_id == user_id)
        stmt = (
            select(Board)
            .where(or_(Board.owner == user_id, Board.id.in_(member_of)))
            .order_by(Board.created_at.desc(), Board.id)
        )
        return list(self.session.scalars(stmt))

    # === Board operations ===
    def create_board(self, owner: str, title: str, description: Optional[str]) -> Board:
        now = now_utc()
        with self.transaction():
            board = Board(
                id=str(uuid.uuid4()),
                title=title,
                description=description or "",
                owner=owner,
                created_at=now,
                updated_at=now,
            )
            board.memberships.append(BoardMembership(user_id=owner, created_at=now))
            self.session.add(board)
        logger.info("Board created: %s by %s", board.id, owner)
        return board

    def list_boards(self, user_id: str) -> List[Board]:
        with self.transaction():
            return self.boards_for_user(user_id)

    def update_board(
        self,
        user_id: str,
        board_id: str,
        title: Optional[str],
        description: Optional[str],
    ) -> Board:
        with self.transaction():
            board = self.get_board(board_id)
            require_owner(board, user_id)
            if title is not None:
                board.title = title
            if description is not None:
                board.description = description
            board.updated_at = now_utc()
        return board

    def delete_board(self, user_id: str, board_id: str) -> None:
        with self.transaction():
            board = self.get_board(board_id)
            require_owner(board, user_id)
            self.session.delete(board)
        logger.info("Board deleted: %s", board_id)

    def add_member(self, user_id: str, board_id: str, member_id: str) -> Board:
        with self.transaction():
            board = self.get_board(board_id)
            require_owner(board, user_id)
            if member_id not in board.members:
                board.memberships.append(BoardMembership(user_id=member_id, created_at=now_utc()))
                board.updated_at = now_utc()
                logger.info("Member added: %s to board %s", member_id, board_id)
        return board

    def remove_member(self, user_id: str, board_id: str, member_id: str) -> Board:
        with self.transaction():
            board = self.get_board(board_id)
            require_owner(board, user_id)
            if member_id == board.owner:
                raise ValidationError("The board owner cannot be removed", {"userId": member_id})
            membership = next((m for m in board.memberships if m.user_id == member_id), None)
            if membership is None:
                raise NotFound("Member", member_id)
            board.memberships.remove(membership)
            board.updated_at = now_utc()
        logger.info("Member removed: %s from board %s", member_id, board_id)
        return board

    # === Title and description edits ===
    def update_list(self, user_id: str, list_id: str, title: Optional[str]) -> ListModel:
        with self.transaction():
            lst = self.get_list(list_id)
            require_access(lst.board, user_id)
            if title is not None:
                lst.title = title
            lst.updated_at = now_utc()
        return lst

    def update_card(
        self,
        user_id: str,
        card_id: str,
        title: Optional[str],
        description: Optional[str],
    ) -> Card:
        with self.transaction():
            card = self.get_card(card_id)
            require_access(card.parent_list.board, user_id)
            if title is not None:
                card.title = title
            if description is not None:
                card.description = description
            card.updated_at = now_utc()
        return card
