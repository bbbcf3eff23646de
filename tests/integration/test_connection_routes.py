"""Integration tests for connection and chat routes."""

import pytest
from fastapi.testclient import TestClient

from src.services.profile_store import PROFILES_TABLE
from tests.fakes import ALICE_ID, BOB_ID, CAROL_ID, FakeSupabase, auth_headers

ALICE = auth_headers(ALICE_ID, "alice@example.com")
BOB = auth_headers(BOB_ID, "bob@example.com")
CAROL = auth_headers(CAROL_ID, "carol@example.com")


@pytest.fixture(autouse=True)
def profiles(fake_supabase: FakeSupabase) -> None:
    rows = fake_supabase.db.rows(PROFILES_TABLE)
    for user_id, name in ((ALICE_ID, "Alice"), (BOB_ID, "Bob"), (CAROL_ID, "Carol")):
        rows.append({"id": user_id, "email": f"{name.lower()}@example.com", "name": name})


def send_request(client: TestClient, headers: dict[str, str], recipient_id: str, message: str = "") -> dict:
    response = client.post(
        "/api/v1/connections/requests",
        headers=headers,
        json={"recipient_id": recipient_id, "message": message},
    )
    assert response.status_code == 201
    return response.json()


class TestConnectionRequests:
    """Tests for /api/v1/connections."""

    def test_send_and_list(self, client: TestClient) -> None:
        request = send_request(client, ALICE, BOB_ID, "Teach me guitar?")

        assert request["status"] == "pending"
        assert request["requester_id"] == ALICE_ID
        incoming = client.get("/api/v1/connections/requests", headers=BOB).json()
        outgoing = client.get("/api/v1/connections/requests", headers=ALICE, params={"direction": "outgoing"}).json()
        assert [r["id"] for r in incoming] == [request["id"]]
        assert [r["id"] for r in outgoing] == [request["id"]]

    def test_self_request_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/connections/requests", headers=ALICE, json={"recipient_id": ALICE_ID})

        assert response.status_code == 422

    def test_duplicate_request_rejected(self, client: TestClient) -> None:
        send_request(client, ALICE, BOB_ID)

        response = client.post("/api/v1/connections/requests", headers=BOB, json={"recipient_id": ALICE_ID})

        assert response.status_code == 422

    def test_accept_connects_and_opens_chat(self, client: TestClient) -> None:
        request = send_request(client, ALICE, BOB_ID)

        response = client.post(f"/api/v1/connections/requests/{request['id']}/accept", headers=BOB)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert client.get("/api/v1/connections", headers=ALICE).json() == {"connections": [BOB_ID]}
        assert client.get("/api/v1/connections", headers=BOB).json() == {"connections": [ALICE_ID]}
        chats = client.get("/api/v1/chats", headers=ALICE).json()
        assert len(chats) == 1
        assert sorted(chats[0]["participants"]) == sorted([ALICE_ID, BOB_ID])
        assert chats[0]["last_message"] is None

    def test_reject_leaves_pair_unconnected(self, client: TestClient) -> None:
        request = send_request(client, ALICE, BOB_ID)

        response = client.post(f"/api/v1/connections/requests/{request['id']}/reject", headers=BOB)

        assert response.json()["status"] == "rejected"
        assert client.get("/api/v1/connections", headers=ALICE).json() == {"connections": []}
        assert client.get("/api/v1/chats", headers=BOB).json() == []

    def test_requester_cannot_accept(self, client: TestClient) -> None:
        request = send_request(client, ALICE, BOB_ID)

        response = client.post(f"/api/v1/connections/requests/{request['id']}/accept", headers=ALICE)

        assert response.status_code == 403


class TestChats:
    """Tests for /api/v1/chats."""

    @pytest.fixture
    def chat_id(self, client: TestClient) -> str:
        request = send_request(client, ALICE, BOB_ID)
        client.post(f"/api/v1/connections/requests/{request['id']}/accept", headers=BOB)
        return client.get("/api/v1/chats", headers=ALICE).json()[0]["id"]

    def test_messages_and_unread(self, client: TestClient, chat_id: str) -> None:
        sent = client.post(f"/api/v1/chats/{chat_id}/messages", headers=ALICE, json={"content": "Hi Bob"})

        assert sent.status_code == 201
        assert sent.json()["recipient_id"] == BOB_ID
        messages = client.get(f"/api/v1/chats/{chat_id}/messages", headers=BOB).json()
        assert [m["content"] for m in messages] == ["Hi Bob"]
        assert client.get("/api/v1/chats", headers=BOB).json()[0]["unread_count"] == 1

        read = client.post(f"/api/v1/chats/{chat_id}/read", headers=BOB)

        assert read.json() == {"updated": 1}
        assert client.get("/api/v1/chats", headers=BOB).json()[0]["unread_count"] == 0

    def test_outsider_refused(self, client: TestClient, chat_id: str) -> None:
        response = client.post(f"/api/v1/chats/{chat_id}/messages", headers=CAROL, json={"content": "Hey"})

        assert response.status_code == 403

    def test_unknown_chat(self, client: TestClient) -> None:
        response = client.get("/api/v1/chats/missing/messages", headers=ALICE)

        assert response.status_code == 404
