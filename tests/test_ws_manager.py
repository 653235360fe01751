import asyncio
import logging

from app.services.ws_manager import WSManager


class DeadSocket:
    async def send_text(self, data):
        raise RuntimeError("socket closed")


class LiveSocket:
    def __init__(self):
        self.sent = []

    async def send_text(self, data):
        self.sent.append(data)


def test_failed_send_drops_the_socket_and_logs(caplog):
    manager = WSManager()
    dead, live = DeadSocket(), LiveSocket()
    manager.identify(dead, "u1")
    manager.identify(live, "u1")

    with caplog.at_level(logging.DEBUG, logger="app.services.ws_manager"):
        sent = asyncio.run(manager.send_type_to_players(["u1"], "progress", {"room": "well"}))

    assert sent == 1
    assert live.sent == ['{"type":"progress","payload":{"room":"well"}}']
    assert manager.clients_by_player["u1"] == {live}
    assert dead not in manager.ws_to_player
    assert any(r.message == "Dropping dead websocket" for r in caplog.records)
