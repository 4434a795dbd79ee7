"""Card moves through the HTTP API."""

import random

import pytest

from conftest import MEMBER, OWNER, STRANGER


@pytest.fixture
def lists(board, make_list):
    return make_list(board["id"], "Source"), make_list(board["id"], "Destination")


@pytest.fixture
def cards(lists, make_card):
    source, destination = lists
    return (
        {t: make_card(source["id"], t) for t in "ABCD"},
        {t: make_card(destination["id"], t) for t in "XY"},
    )


def snapshot(view, board_id):
    """(title, position, listId) for every card, grouped by list."""
    return {
        lst["id"]: [(c["title"], c["position"], c["listId"]) for c in lst["cards"]]
        for lst in view(board_id)["lists"]
    }


def snapshot_list(view, board_id, list_id):
    return next(lst for lst in view(board_id)["lists"] if lst["id"] == list_id)["cards"]


class TestSameListMove:
    def test_forward(self, board, lists, cards, move, titles, view):
        source, _ = lists
        resp = move(cards[0]["A"]["id"], source["id"], source["id"], 0, 2)
        assert resp.status_code == 200
        assert resp.json()["position"] == 2
        assert titles(board["id"], source["id"]) == list("BCAD")
        positions = [c["position"] for c in snapshot_list(view, board["id"], source["id"])]
        assert positions == [0, 1, 2, 3]

    def test_backward(self, board, lists, cards, move, titles):
        source, _ = lists
        move(cards[0]["D"]["id"], source["id"], source["id"], 3, 0)
        assert titles(board["id"], source["id"]) == list("DABC")

    def test_to_end_is_clamped(self, board, lists, cards, move, titles):
        source, _ = lists
        resp = move(cards[0]["B"]["id"], source["id"], source["id"], 1, 10)
        assert resp.json()["position"] == 3
        assert titles(board["id"], source["id"]) == list("ACDB")

    def test_other_lists_untouched(self, board, lists, cards, move, view):
        source, destination = lists
        before = snapshot(view, board["id"])[destination["id"]]
        move(cards[0]["A"]["id"], source["id"], source["id"], 0, 3)
        assert snapshot(view, board["id"])[destination["id"]] == before

    def test_member_can_move(self, board, lists, cards, move, titles):
        source, _ = lists
        assert move(cards[0]["C"]["id"], source["id"], source["id"], 2, 0, user=MEMBER).status_code == 200
        assert titles(board["id"], source["id"]) == list("CABD")


class TestCrossListMove:
    def test_into_middle(self, board, lists, cards, move, view):
        source, destination = lists
        resp = move(cards[0]["A"]["id"], source["id"], destination["id"], 0, 1)
        assert resp.status_code == 200
        assert resp.json()["listId"] == destination["id"]
        assert resp.json()["position"] == 1

        after = snapshot(view, board["id"])
        assert after[source["id"]] == [
            ("B", 0, source["id"]),
            ("C", 1, source["id"]),
            ("D", 2, source["id"]),
        ]
        assert after[destination["id"]] == [
            ("X", 0, destination["id"]),
            ("A", 1, destination["id"]),
            ("Y", 2, destination["id"]),
        ]

    def test_past_end_is_clamped(self, board, lists, cards, move, titles):
        source, destination = lists
        resp = move(cards[0]["C"]["id"], source["id"], destination["id"], 2, 99)
        assert resp.json()["position"] == 2
        assert titles(board["id"], destination["id"]) == list("XYC")
        assert titles(board["id"], source["id"]) == list("ABD")

    def test_into_empty_list(self, board, lists, cards, make_list, move, titles):
        source, _ = lists
        empty = make_list(board["id"], "Empty")
        resp = move(cards[0]["B"]["id"], source["id"], empty["id"], 1, 0)
        assert resp.json()["position"] == 0
        assert titles(board["id"], empty["id"]) == ["B"]

    def test_last_card_leaves_empty_source(self, board, lists, cards, move, titles):
        source, destination = lists
        move(cards[1]["X"]["id"], destination["id"], source["id"], 0, 0)
        move(cards[1]["Y"]["id"], destination["id"], source["id"], 0, 99)
        assert titles(board["id"], destination["id"]) == []
        assert titles(board["id"], source["id"]) == list("XABCDY")

    def test_across_boards_with_access_to_both(
        self, client, headers, board, lists, cards, make_list, make_card, move, titles
    ):
        source, _ = lists
        foreign = client.post("/boards", json={"title": "Other"}, headers=headers[STRANGER]).json()
        client.post(f"/boards/{foreign['id']}/members", json={"userId": OWNER}, headers=headers[STRANGER])
        foreign_list = make_list(foreign["id"], "Theirs", user=STRANGER)
        make_card(foreign_list["id"], "Z", user=STRANGER)

        resp = move(cards[0]["A"]["id"], source["id"], foreign_list["id"], 0, 0)

        assert resp.status_code == 200
        assert resp.json()["listId"] == foreign_list["id"]
        assert resp.json()["position"] == 0
        assert titles(foreign["id"], foreign_list["id"]) == list("AZ")
        assert titles(board["id"], source["id"]) == list("BCD")


class TestNoopMove:
    def test_same_list_same_index(self, board, lists, cards, move, view):
        source, _ = lists
        before = snapshot(view, board["id"])
        resp = move(cards[0]["B"]["id"], source["id"], source["id"], 1, 1)
        assert resp.status_code == 200
        assert resp.json()["position"] == 1
        assert snapshot(view, board["id"]) == before

    def test_last_card_past_end(self, board, lists, cards, move, view):
        source, _ = lists
        before = snapshot(view, board["id"])
        move(cards[0]["D"]["id"], source["id"], source["id"], 3, 10)
        assert snapshot(view, board["id"]) == before


class TestRejectedMoves:
    def test_stranger_is_denied(self, board, lists, cards, move, view):
        source, destination = lists
        before = snapshot(view, board["id"])
        resp = move(cards[0]["A"]["id"], source["id"], destination["id"], 0, 0, user=STRANGER)
        assert resp.status_code == 403
        assert snapshot(view, board["id"]) == before

    def test_missing_card_is_404(self, lists, move):
        source, _ = lists
        assert move("nope", source["id"], source["id"], 0, 0).status_code == 404

    def test_missing_destination_is_404(self, board, lists, cards, move, view):
        source, _ = lists
        before = snapshot(view, board["id"])
        assert move(cards[0]["A"]["id"], source["id"], "nope", 0, 0).status_code == 404
        assert snapshot(view, board["id"]) == before

    def test_wrong_source_list_is_400(self, lists, cards, move):
        source, destination = lists
        resp = move(cards[0]["A"]["id"], destination["id"], source["id"], 0, 0)
        assert resp.status_code == 400

    def test_source_index_out_of_range_is_400(self, lists, cards, move):
        source, destination = lists
        resp = move(cards[0]["A"]["id"], source["id"], destination["id"], 7, 0)
        assert resp.status_code == 400

    def test_stale_source_index_is_409(self, board, lists, cards, move, view):
        source, destination = lists
        before = snapshot(view, board["id"])
        resp = move(cards[0]["A"]["id"], source["id"], destination["id"], 2, 0)
        assert resp.status_code == 409
        assert resp.json()["error"]["details"]["currentIndex"] == 0
        assert snapshot(view, board["id"]) == before

    def test_negative_index_is_400(self, lists, cards, move):
        source, _ = lists
        assert move(cards[0]["A"]["id"], source["id"], source["id"], 0, -1).status_code == 400

    def test_missing_fields_are_400(self, client, headers, cards):
        resp = client.put(
            f"/cards/{cards[0]['A']['id']}/move",
            json={"sourceIndex": 0},
            headers=headers[OWNER],
        )
        assert resp.status_code == 400

    def test_destination_on_foreign_board_is_denied(
        self, client, headers, lists, cards, move, make_list
    ):
        source, _ = lists
        foreign = client.post("/boards", json={"title": "Other"}, headers=headers[STRANGER]).json()
        foreign_list = make_list(foreign["id"], "Theirs", user=STRANGER)
        resp = move(cards[0]["A"]["id"], source["id"], foreign_list["id"], 0, 0)
        assert resp.status_code == 403


def test_random_operations_keep_lists_dense(client, headers, board, make_list, make_card, move, view):
    """Drive random creates, deletes and moves against an in-memory model."""
    rng = random.Random(20240611)
    lists = [make_list(board["id"], f"L{i}")["id"] for i in range(3)]
    model = {list_id: [] for list_id in lists}
    counter = 0

    for _ in range(120):
        op = rng.choice(["create", "create", "move", "move", "move", "delete"])
        populated = [list_id for list_id in lists if model[list_id]]
        if op == "create" or not populated:
            list_id = rng.choice(lists)
            counter += 1
            card = make_card(list_id, f"c{counter}")
            model[list_id].append(card["id"])
        elif op == "delete":
            list_id = rng.choice(populated)
            card_id = model[list_id].pop(rng.randrange(len(model[list_id])))
            assert client.delete(f"/cards/{card_id}", headers=headers[OWNER]).status_code == 200
        else:
            source = rng.choice(populated)
            destination = rng.choice(lists)
            source_index = rng.randrange(len(model[source]))
            card_id = model[source][source_index]
            destination_index = rng.randrange(len(model[destination]) + 2)
            resp = move(card_id, source, destination, source_index, destination_index)
            assert resp.status_code == 200, resp.text
            model[source].pop(source_index)
            target = min(destination_index, len(model[destination]))
            model[destination].insert(target, card_id)

        current = {lst["id"]: lst["cards"] for lst in view(board["id"])["lists"]}
        for list_id in lists:
            cards = current[list_id]
            assert [c["id"] for c in cards] == model[list_id]
            assert [c["position"] for c in cards] == list(range(len(cards)))
            assert all(c["listId"] == list_id for c in cards)
