"""
Realtime channel tests over a real WebSocket.

Inbound frames on one socket are handled in order, and the server never
replies to a dropped frame. To assert that something was dropped, a test
follows it with a valid frame on the same socket and checks that the valid
frame's broadcast is the first thing to arrive.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


@pytest.fixture
def tc(api_app):
    with TestClient(api_app) as test_client:
        yield test_client


def signup(tc: TestClient, name: str) -> dict:
    response = tc.post(
        "/api/auth/register",
        json={"name": name, "branch": "CSE", "email": f"{name.lower()}@example.com", "password": "password123"},
    )
    assert response.status_code == 201, response.text
    tc.cookies.clear()
    data = response.json()
    return {
        "id": data["user"]["id"],
        "name": name,
        "token": data["access_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }


def make_group(tc: TestClient, owner: dict, *members: dict) -> int:
    response = tc.post(
        "/api/groups/join", json={"member_ids": [m["id"] for m in members]}, headers=owner["headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()["group_id"]


def send_frame(user: dict, group_id: int, content: str, **overrides) -> dict:
    data = {
        "group_id": group_id,
        "sender_id": user["id"],
        "sender_name": user["name"],
        "content": content,
        "type": "text",
    }
    data.update(overrides)
    return {"event": "send-message", "data": data}


def stored_messages(tc: TestClient, user: dict, group_id: int) -> list[dict]:
    return tc.get(f"/api/groups/{group_id}", headers=user["headers"]).json()["messages"]


class TestConnection:
    def test_invalid_token_is_rejected(self, tc):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with tc.websocket_connect("/ws?token=not-a-jwt"):
                pass
        assert exc_info.value.code == 1008

    def test_missing_token_is_rejected(self, tc):
        with pytest.raises(WebSocketDisconnect):
            with tc.websocket_connect("/ws"):
                pass


class TestMessaging:
    def test_join_then_send_delivers_exactly_one_new_message(self, tc):
        """The sender sees its own message once, with the server id and timestamp."""
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        group_id = make_group(tc, ada, ben)

        with tc.websocket_connect(f"/ws?token={ada['token']}") as ws:
            ws.send_json({"event": "join-group", "data": group_id})
            ws.send_json(send_frame(ada, group_id, "hello"))
            frame = ws.receive_json()

        assert frame["event"] == "new-message"
        assert frame["data"]["content"] == "hello"
        assert frame["data"]["sender_id"] == ada["id"]
        assert isinstance(frame["data"]["id"], int)
        assert frame["data"]["timestamp"]

        [stored] = stored_messages(tc, ada, group_id)
        assert stored["id"] == frame["data"]["id"]

    def test_other_members_receive_and_outsiders_do_not(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        cy = signup(tc, "Cy")
        dee = signup(tc, "Dee")
        group_id = make_group(tc, ada, ben)
        other_group = make_group(tc, cy, dee)

        with tc.websocket_connect(f"/ws?token={ben['token']}") as ben_ws, tc.websocket_connect(
            f"/ws?token={cy['token']}"
        ) as cy_ws, tc.websocket_connect(f"/ws?token={ada['token']}") as ada_ws:
            # Ben's own echo proves his join has been handled
            ben_ws.send_json({"event": "join-group", "data": {"groupId": group_id}})
            ben_ws.send_json(send_frame(ben, group_id, "ready"))
            assert ben_ws.receive_json()["data"]["content"] == "ready"

            cy_ws.send_json({"event": "join-group", "data": other_group})
            cy_ws.send_json(send_frame(cy, other_group, "cy here"))
            assert cy_ws.receive_json()["data"]["content"] == "cy here"

            ada_ws.send_json(send_frame(ada, group_id, "from ada"))
            received = ben_ws.receive_json()
            assert received["event"] == "new-message"
            assert received["data"]["content"] == "from ada"

            # Cy's next frame is his own, not Ada's
            cy_ws.send_json(send_frame(cy, other_group, "still just us"))
            assert cy_ws.receive_json()["data"]["content"] == "still just us"

    def test_send_message_alias(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        group_id = make_group(tc, ada, ben)

        with tc.websocket_connect(f"/ws?token={ada['token']}") as ws:
            ws.send_json({"event": "join-group", "data": group_id})
            frame = send_frame(ada, group_id, "camel")
            frame["event"] = "sendMessage"
            ws.send_json(frame)
            assert ws.receive_json()["data"]["content"] == "camel"


class TestDroppedFrames:
    def test_spoofed_sender_is_dropped(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        group_id = make_group(tc, ada, ben)

        with tc.websocket_connect(f"/ws?token={ada['token']}") as ws:
            ws.send_json({"event": "join-group", "data": group_id})
            ws.send_json(send_frame(ada, group_id, "pretending", sender_id=ben["id"]))
            ws.send_json(send_frame(ada, group_id, "genuine"))
            assert ws.receive_json()["data"]["content"] == "genuine"

        assert [m["content"] for m in stored_messages(tc, ada, group_id)] == ["genuine"]

    def test_malformed_frames_keep_the_socket_open(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        group_id = make_group(tc, ada, ben)

        with tc.websocket_connect(f"/ws?token={ada['token']}") as ws:
            ws.send_json({"event": "join-group", "data": group_id})
            ws.send_text("this is not json")
            ws.send_bytes(b"\x00\x01")
            ws.send_json({"data": "no event name"})
            ws.send_json({"event": "typing", "data": {}})
            ws.send_json(send_frame(ada, group_id, ""))
            ws.send_json(send_frame(ada, group_id, "x", type="sticker"))
            ws.send_json(send_frame(ada, group_id, "after the noise"))
            assert ws.receive_json()["data"]["content"] == "after the noise"

    def test_non_member_cannot_join_or_send(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        eve = signup(tc, "Eve")
        fay = signup(tc, "Fay")
        group_id = make_group(tc, ada, ben)
        eve_group = make_group(tc, eve, fay)

        with tc.websocket_connect(f"/ws?token={eve['token']}") as eve_ws:
            eve_ws.send_json({"event": "join-group", "data": group_id})
            eve_ws.send_json(send_frame(eve, group_id, "let me in"))
            eve_ws.send_json({"event": "join-group", "data": eve_group})
            eve_ws.send_json(send_frame(eve, eve_group, "own group"))
            assert eve_ws.receive_json()["data"]["content"] == "own group"

        assert stored_messages(tc, ada, group_id) == []


class TestHttpEventsReachTheChannel:
    def test_edit_delete_rename_and_clear_are_broadcast(self, tc):
        ada = signup(tc, "Ada")
        ben = signup(tc, "Ben")
        group_id = make_group(tc, ada, ben)

        with tc.websocket_connect(f"/ws?token={ben['token']}") as ws:
            ws.send_json({"event": "join-group", "data": group_id})
            ws.send_json(send_frame(ben, group_id, "first draft"))
            message_id = ws.receive_json()["data"]["id"]

            tc.put(f"/api/messages/{message_id}", json={"content": "final"}, headers=ben["headers"])
            updated = ws.receive_json()
            assert (updated["event"], updated["data"]["content"]) == ("message-updated", "final")

            tc.patch(f"/api/groups/{group_id}", json={"name": "Night Owls"}, headers=ada["headers"])
            renamed = ws.receive_json()
            assert (renamed["event"], renamed["data"]["name"]) == ("group-updated", "Night Owls")

            tc.delete(f"/api/messages/{message_id}", headers=ben["headers"])
            assert ws.receive_json() == {
                "event": "message-deleted",
                "data": {"id": message_id, "group_id": group_id},
            }

            tc.post(f"/api/groups/{group_id}/clear-chat", headers=ada["headers"])
            assert ws.receive_json() == {"event": "chat-cleared", "data": {"group_id": group_id}}
