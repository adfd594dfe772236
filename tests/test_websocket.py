"""
End-to-end tests for the /ws endpoint and the HTTP inspection routes.
"""

import unittest

from fastapi.testclient import TestClient

from pairshare.config import Settings
from pairshare.main import create_app


class WebSocketTestCase(unittest.TestCase):

    def setUp(self):
        self.app = create_app(Settings(static_dir="does-not-exist", log_level="DEBUG"))
        self.client = TestClient(self.app)

    def join(self, ws, room_id="abc", name="Alice"):
        ws.send_json({"type": "join-room", "roomId": room_id, "name": name})
        return ws.receive_json()


class TestRoomScenario(WebSocketTestCase):

    def test_two_party_session(self):
        with self.client.websocket_connect("/ws") as a:
            self.assertEqual(self.join(a, name="Alice"), {"type": "joined", "roomId": "abc", "role": "initiator"})

            with self.client.websocket_connect("/ws") as b:
                self.assertEqual(self.join(b, name="Bob"), {"type": "joined", "roomId": "abc", "role": "responder"})

                self.assertEqual(a.receive_json(), {"type": "system", "text": "Bob joined as responder"})
                self.assertEqual(a.receive_json(), {"type": "need-offer", "roomId": "abc"})

                with self.client.websocket_connect("/ws") as c:
                    self.assertEqual(self.join(c, name="Carol"), {"type": "room-full"})

                offer = {"type": "offer", "sdp": "v=0"}
                a.send_json({"type": "webrtc-offer", "roomId": "abc", "offer": offer})
                self.assertEqual(b.receive_json(), {"type": "webrtc-offer", "offer": offer})

                answer = {"type": "answer", "sdp": "v=0"}
                b.send_json({"type": "webrtc-answer", "roomId": "abc", "answer": answer})
                self.assertEqual(a.receive_json(), {"type": "webrtc-answer", "answer": answer})

                b.send_json({"type": "webrtc-ice", "roomId": "abc", "candidate": {"candidate": "c1"}})
                self.assertEqual(a.receive_json(), {"type": "webrtc-ice", "candidate": {"candidate": "c1"}})

                response = self.client.get("/api/rooms/abc")
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.json(), {
                    "room_id": "abc",
                    "initiator": "Alice",
                    "responder": "Bob",
                    "occupants": 2,
                })

            self.assertEqual(a.receive_json(), {"type": "system", "text": "Bob left"})

            with self.client.websocket_connect("/ws") as d:
                self.assertEqual(self.join(d, name="Dave"), {"type": "joined", "roomId": "abc", "role": "responder"})
                self.assertEqual(a.receive_json(), {"type": "system", "text": "Dave joined as responder"})
                self.assertEqual(a.receive_json(), {"type": "need-offer", "roomId": "abc"})

    def test_chat_reaches_everyone_with_bounds(self):
        with self.client.websocket_connect("/ws") as a, self.client.websocket_connect("/ws") as b:
            self.join(a, name="Alice")
            self.join(b, name="Bob")
            a.receive_json()
            a.receive_json()

            b.send_json({"type": "chat", "roomId": "abc", "name": "B" * 50, "text": "x" * 900})

            for ws in (a, b):
                frame = ws.receive_json()
                self.assertEqual(frame["type"], "chat")
                self.assertEqual(frame["name"], "B" * 30)
                self.assertEqual(frame["text"], "x" * 500)
                self.assertIsInstance(frame["timestamp"], int)

    def test_empty_room_id_gets_err(self):
        with self.client.websocket_connect("/ws") as a:
            frame = self.join(a, room_id="  ")

            self.assertEqual(frame["type"], "err")
            self.assertTrue(frame["message"])
            self.assertEqual(self.client.get("/api/debug").json()["total_rooms"], 0)

    def test_malformed_frames_keep_connection_open(self):
        with self.client.websocket_connect("/ws") as a:
            a.send_text("not json")
            a.send_text("[1, 2, 3]")
            a.send_json({"type": ["join-room"]})
            a.send_json({"type": "no-such-event"})
            a.send_json({"type": "webrtc-offer", "roomId": "ghost", "offer": {}})
            a.send_bytes(b"\x00garbage")
            a.send_text("[" * 100000)

            self.assertEqual(self.join(a), {"type": "joined", "roomId": "abc", "role": "initiator"})

    def test_bad_frames_do_not_release_slot(self):
        with self.client.websocket_connect("/ws") as a, self.client.websocket_connect("/ws") as b:
            self.join(a, name="Alice")
            self.join(b, name="Bob")
            a.receive_json()
            a.receive_json()

            b.send_bytes(b"\x00garbage")
            b.send_text("[" * 100000)
            b.send_json({"type": "chat", "roomId": "abc", "name": "Bob", "text": "still here"})

            frame = a.receive_json()
            self.assertEqual(frame["type"], "chat")
            self.assertEqual(frame["text"], "still here")
            self.assertEqual(b.receive_json()["text"], "still here")

            room = self.client.get("/api/debug").json()["rooms"]["abc"]
            self.assertIsNotNone(room["initiator_id"])
            self.assertIsNotNone(room["responder_id"])


class TestHttpRoutes(WebSocketTestCase):

    def test_unknown_room_is_404(self):
        response = self.client.get("/api/rooms/missing")

        self.assertEqual(response.status_code, 404)

    def test_room_disappears_after_last_participant_leaves(self):
        with self.client.websocket_connect("/ws") as a:
            self.join(a)
            debug = self.client.get("/api/debug").json()
            self.assertIsNotNone(debug["rooms"]["abc"]["initiator_id"])
            self.assertEqual(debug["total_connections"], 1)

        # disconnect cleanup runs in the endpoint after close
        with self.client.websocket_connect("/ws") as b:
            self.assertEqual(self.join(b)["role"], "initiator")


if __name__ == "__main__":
    unittest.main()
