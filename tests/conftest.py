import pytest
from fastapi.testclient import TestClient

from taskboard.config import Settings
from taskboard.db import init_db, make_engine, make_session_factory
from taskboard.main import create_app
from taskboard.ordering import OrderingEngine
from taskboard.storage import Storage

OWNER = "alice"
MEMBER = "bob"
STRANGER = "mallory"


@pytest.fixture
def app():
    """App bound to a private in-memory database."""
    return create_app(Settings(database_url="sqlite://"))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def headers() -> dict:
    return {user: {"Authorization": f"Bearer {user}"} for user in (OWNER, MEMBER, STRANGER)}


@pytest.fixture
def board(client, headers) -> dict:
    """A board owned by alice with bob as a member."""
    resp = client.post("/boards", json={"title": "Roadmap"}, headers=headers[OWNER])
    assert resp.status_code == 201
    board = resp.json()
    resp = client.post(f"/boards/{board['id']}/members", json={"userId": MEMBER}, headers=headers[OWNER])
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def make_list(client, headers):
    def _make(board_id: str, title: str = "Todo", user: str = OWNER) -> dict:
        resp = client.post("/lists", json={"title": title, "boardId": board_id}, headers=headers[user])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture
def make_card(client, headers):
    def _make(list_id: str, title: str, user: str = OWNER) -> dict:
        resp = client.post("/cards", json={"title": title, "listId": list_id}, headers=headers[user])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture
def view(client, headers):
    """Fetch the aggregated board as a mapping of list id -> list view."""

    def _view(board_id: str, user: str = OWNER) -> dict:
        resp = client.get(f"/boards/{board_id}", headers=headers[user])
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _view


@pytest.fixture
def titles(view):
    """Card titles of one list, in board-view order."""

    def _titles(board_id: str, list_id: str) -> list[str]:
        lists = {lst["id"]: lst for lst in view(board_id)["lists"]}
        return [card["title"] for card in lists[list_id]["cards"]]

    return _titles


@pytest.fixture
def move(client, headers):
    def _move(card_id: str, source: str, destination: str, source_index: int, destination_index: int, user: str = OWNER):
        return client.put(
            f"/cards/{card_id}/move",
            json={
                "sourceListId": source,
                "destinationListId": destination,
                "sourceIndex": source_index,
                "destinationIndex": destination_index,
            },
            headers=headers[user],
        )

    return _move


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def storage(session_factory):
    session = session_factory()
    yield Storage(session)
    session.close()


@pytest.fixture
def ordering(storage) -> OrderingEngine:
    return OrderingEngine(storage)
