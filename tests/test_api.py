"""HTTP tests for the room endpoints."""

import re

from fastapi.testclient import TestClient

from app import create_app
from backend import RoomRegistry
from broadcaster import Subscriber, attach
from tests.conftest import drain


def _create(client, **body):
    response = client.post("/rooms", json=body)
    assert response.status_code == 200
    return response.json()


def _join(client, code, **overrides):
    body = {"name": "Alice", "timezone": "Europe/London", "locale": "en-GB"}
    body.update(overrides)
    return client.post(f"/rooms/{code}/join", json=body)


class TestCreateRoom:
    def test_without_code(self, client, clock):
        data = _create(client)

        assert re.fullmatch(r"[0-9A-F]{6}", data["code"])
        assert data["createdAt"] == clock.now

    def test_without_body(self, client):
        response = client.post("/rooms")

        assert response.status_code == 200
        assert re.fullmatch(r"[0-9A-F]{6}", response.json()["code"])

    def test_requested_code(self, client):
        assert _create(client, roomCode="team-standup")["code"] == "TEAMSTANDUP"

    def test_collision_gets_fresh_code(self, client):
        _create(client, roomCode="daily")
        assert _create(client, roomCode="DAILY")["code"] != "DAILY"

    def test_collision_in_strict_mode(self, clock):
        client = TestClient(create_app(RoomRegistry(clock=clock, strict_codes=True)))
        _create(client, roomCode="daily")

        response = client.post("/rooms", json={"roomCode": "DAILY"})

        assert response.status_code == 400
        assert response.json() == {"error": "Room code already exists"}


class TestJoin:
    def test_join_and_rejoin(self, client, registry):
        code = _create(client)["code"]

        first = _join(client, code)
        assert first.status_code == 200
        member = first.json()["member"]
        assert member["name"] == "Alice"

        second = _join(client, code, memberId=member["id"])
        assert second.status_code == 200
        body = second.json()
        assert body["member"] == member
        assert body["roomState"]["members"] == [member]
        assert body["roomState"]["code"] == code
        assert set(body["roomState"]) == {"code", "createdAt", "startTime", "previousStartTime", "members"}

    def test_join_broadcasts_once(self, client, registry):
        code = _create(client)["code"]
        subscriber = Subscriber(code)
        attach(registry.get_room(code), subscriber)

        member = _join(client, code).json()["member"]
        _join(client, code, memberId=member["id"])

        assert drain(subscriber) == [("member-joined", member)]

    def test_unknown_room(self, client):
        assert _join(client, "NOPE").status_code == 404

    def test_missing_fields(self, client):
        code = _create(client)["code"]
        response = client.post(f"/rooms/{code}/join", json={"name": "Alice"})
        assert response.status_code == 422


class TestReset:
    def test_reset_without_body(self, client, registry, clock):
        code = _create(client)["code"]
        created = registry.get_room(code).created_at
        clock.advance(500)

        response = client.post(f"/rooms/{code}/reset")

        assert response.status_code == 200
        assert response.json() == {"startTime": clock.now}
        assert registry.get_room(code).previous_start_time == created

    def test_scheduled_start_then_early_reset(self, client, registry, clock):
        code = _create(client)["code"]
        clock.advance(1_000)
        first_start = clock.now - 1_000
        scheduled = clock.now + 60_000

        assert client.post(f"/rooms/{code}/reset", json={"startTime": scheduled}).json() == {"startTime": scheduled}
        clock.advance(10_000)
        client.post(f"/rooms/{code}/reset", json={})

        room = registry.get_room(code)
        assert room.previous_start_time == first_start
        assert room.start_time == clock.now

    def test_unknown_room(self, client):
        assert client.post("/rooms/NOPE/reset", json={}).status_code == 404


class TestLeave:
    def test_leave_removes_member_and_empty_room(self, client, registry):
        code = _create(client)["code"]
        member = _join(client, code).json()["member"]

        response = client.post(f"/rooms/{code}/leave", json={"memberId": member["id"]})

        assert response.status_code == 204
        assert registry.get_room(code) is None

    def test_leave_keeps_room_with_subscribers(self, client, registry):
        code = _create(client)["code"]
        member = _join(client, code).json()["member"]
        subscriber = Subscriber(code)
        attach(registry.get_room(code), subscriber)

        client.post(f"/rooms/{code}/leave", json={"memberId": member["id"]})

        assert registry.get_room(code) is not None
        assert drain(subscriber) == [("member-left", {"memberId": member["id"]})]

    def test_leave_is_always_204(self, client):
        code = _create(client)["code"]

        assert client.post(f"/rooms/{code}/leave", json={"memberId": "ghost"}).status_code == 204
        assert client.post("/rooms/NOPE/leave", json={"memberId": "ghost"}).status_code == 204
        assert client.post(f"/rooms/{code}/leave").status_code == 204


class TestRoomStateAndHealth:
    def test_room_state(self, client):
        code = _create(client)["code"]
        member = _join(client, code).json()["member"]

        response = client.get(f"/rooms/{code}")

        assert response.status_code == 200
        assert response.json()["members"] == [member]

    def test_room_state_unknown(self, client):
        assert client.get("/rooms/NOPE").status_code == 404

    def test_health(self, client):
        _create(client)
        assert client.get("/health").json() == {"ok": True, "rooms": 1}


class TestEventsEndpoint:
    def test_unknown_room(self, client, registry):
        response = client.get("/events", params={"code": "NOPE"})

        assert response.status_code == 404
        assert len(registry) == 0

    def test_code_required(self, client):
        assert client.get("/events").status_code == 422
