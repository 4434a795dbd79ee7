"""Positional ordering of lists within boards and cards within lists.

Positions are dense and zero-based: a parent with N children holds them at
positions ``0..N-1``. Every operation here that changes membership or order
rewrites the positions of all affected siblings in the same transaction.
"""

from __future__ import annotations

import logging
import uuid
from operator import attrgetter
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from .access import require_access
from .db import Board, Card, ListModel, now_utc
from .errors import Conflict, ValidationError
from .storage import Storage

logger = logging.getLogger(__name__)


class Positioned(Protocol):
    position: int


T = TypeVar("T")
P = TypeVar("P", bound=Positioned)


def clamp_index(index: int, length: int) -> int:
    """Clamp an insertion index to ``[0, length]``."""
    return max(0, min(index, length))


def relocate(items: Sequence[T], source_index: int, destination_index: int) -> list[T]:
    """Return a copy of ``items`` with the element at ``source_index`` moved.

    ``destination_index`` addresses the sequence after removal and is clamped
    to its bounds.
    """
    result = list(items)
    item = result.pop(source_index)
    result.insert(clamp_index(destination_index, len(result)), item)
    return result


def reindex(items: Sequence[P]) -> None:
    for i, item in enumerate(items):
        if item.position != i:
            item.position = i


def by_position(items: Iterable[P]) -> list[P]:
    # Stable, so ties keep the (position, created_at, id) load order.
    return sorted(items, key=attrgetter("position"))


def is_dense(items: Sequence[Positioned]) -> bool:
    return sorted(item.position for item in items) == list(range(len(items)))


def _touch(parent: Board | ListModel) -> None:
    # Forces an UPDATE of the parent row so its version counter is checked.
    parent.updated_at = now_utc()


class OrderingEngine:
    """Create, delete and move operations that maintain dense positions."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    # === Lists ===
    def create_list(self, user_id: str, board_id: str, title: str) -> ListModel:
        with self.storage.transaction():
            board = self.storage.get_board(board_id)
            require_access(board, user_id)
            now = now_utc()
            lst = ListModel(
                id=str(uuid.uuid4()),
                title=title,
                position=len(board.lists),
                created_at=now,
                updated_at=now,
            )
            board.lists.append(lst)
            _touch(board)
        logger.info("List created: %s on board %s at %d", lst.id, board_id, lst.position)
        return lst

    def delete_list(self, user_id: str, list_id: str) -> None:
        with self.storage.transaction():
            lst = self.storage.get_list(list_id)
            board = lst.board
            require_access(board, user_id)
            # Cards go with the list through the delete-orphan cascade.
            board.lists.remove(lst)
            reindex(by_position(board.lists))
            _touch(board)
        logger.info("List deleted: %s from board %s", list_id, board.id)

    def move_list(self, user_id: str, list_id: str, destination_index: int) -> ListModel:
        if destination_index < 0:
            raise ValidationError("destinationIndex must not be negative")
        with self.storage.transaction():
            lst = self.storage.get_list(list_id)
            board = lst.board
            require_access(board, user_id)
            lists = by_position(board.lists)
            source_index = lists.index(lst)
            target = clamp_index(destination_index, len(lists) - 1)
            if target == source_index and lst.position == source_index:
                logger.debug("List move is a no-op: %s", list_id)
                return lst
            reindex(relocate(lists, source_index, target))
            _touch(board)
        logger.info("List moved: %s (%d -> %d)", list_id, source_index, target)
        return lst

    # === Cards ===
    def create_card(
        self,
        user_id: str,
        list_id: str,
        title: str,
        description: Optional[str],
    ) -> Card:
        with self.storage.transaction():
            lst = self.storage.get_list(list_id)
            require_access(lst.board, user_id)
            now = now_utc()
            card = Card(
                id=str(uuid.uuid4()),
                title=title,
                description=description or "",
                position=len(lst.cards),
                created_at=now,
                updated_at=now,
            )
            lst.cards.append(card)
            _touch(lst)
        logger.info("Card created: %s in list %s at %d", card.id, list_id, card.position)
        return card

    def delete_card(self, user_id: str, card_id: str) -> None:
        with self.storage.transaction():
            card = self.storage.get_card(card_id)
            lst = card.parent_list
            require_access(lst.board, user_id)
            lst.cards.remove(card)
            reindex(by_position(lst.cards))
            _touch(lst)
        logger.info("Card deleted: %s from list %s", card_id, lst.id)

    def move_card(
        self,
        user_id: str,
        card_id: str,
        source_list_id: str,
        destination_list_id: str,
        source_index: int,
        destination_index: int,
    ) -> Card:
        """Move a card to ``destination_index`` of ``destination_list_id``.

        ``source_index`` must address the card in the source list's current
        ordering. For a same-list move the destination index refers to the
        list with the card removed; for a cross-list move it refers to the
        destination list before insertion. Destination indices past the end
        are clamped. Nothing is written unless every check passes.
        """
        if source_index < 0 or destination_index < 0:
            raise ValidationError("Indices must not be negative")
        same_list = source_list_id == destination_list_id
        with self.storage.transaction():
            card = self.storage.get_card(card_id)
            source = self.storage.get_list(source_list_id)
            destination = source if same_list else self.storage.get_list(destination_list_id)
            require_access(source.board, user_id)
            if destination.board_id != source.board_id:
                require_access(destination.board, user_id)

            if card.list_id != source.id:
                raise ValidationError(
                    "Card is not in the source list",
                    {"cardId": card.id, "sourceListId": source.id},
                )
            source_cards = by_position(source.cards)
            if source_index >= len(source_cards):
                raise ValidationError(
                    "sourceIndex is out of range",
                    {"sourceIndex": source_index, "length": len(source_cards)},
                )
            if source_cards[source_index] is not card:
                raise Conflict(
                    "sourceIndex does not match the card's current position",
                    {"sourceIndex": source_index, "currentIndex": source_cards.index(card)},
                )

            if same_list:
                target = clamp_index(destination_index, len(source_cards) - 1)
                if target == source_index and card.position == source_index:
                    logger.debug("Card move is a no-op: %s", card_id)
                    return card
                reindex(relocate(source_cards, source_index, target))
                _touch(source)
            else:
                del source_cards[source_index]
                destination_cards = by_position(destination.cards)
                target = clamp_index(destination_index, len(destination_cards))
                destination_cards.insert(target, card)
                # Reparenting moves the card between the two collections;
                # card.list_id is synced from the destination on flush.
                card.parent_list = destination
                reindex(source_cards)
                reindex(destination_cards)
                _touch(source)
                _touch(destination)
            card.updated_at = now_utc()
        logger.info(
            "Card moved: %s (%s[%d] -> %s[%d])",
            card_id,
            source_list_id,
            source_index,
            destination_list_id,
            target,
        )
        return card
