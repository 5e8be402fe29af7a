import logging
from typing import Callable, Dict

from fastapi import FastAPI

from shared.config import SESSION_RETENTION_SECONDS, get_catalog_path, get_rng_seed
from shared.server_base import BaseGameManager, create_game_app, run_server
from games.live_auction.catalog import DEFAULT_CATALOG_PATH, file_catalog
from games.live_auction.errors import AuctionError
from games.live_auction.registry import RoomRegistry

logger = logging.getLogger(__name__)


class LiveAuctionManager(BaseGameManager):
    """Routes WebSocket messages to the room registry."""

    def __init__(self, registry: RoomRegistry = None, catalog_path: str = None, seed: int = None):
        super().__init__()
        if registry is None:
            registry = RoomRegistry(
                self.send,
                catalog_loader=file_catalog(catalog_path or get_catalog_path() or DEFAULT_CATALOG_PATH),
                seed=seed if seed is not None else get_rng_seed(),
                retention_seconds=SESSION_RETENTION_SECONDS,
            )
        self.registry = registry
        self.handlers: Dict[str, Callable[[str, dict], None]] = {
            "create_session": self.on_create_session,
            "create_solo_session": self.on_create_solo_session,
            "join_session": self.on_join_session,
            "select_faction": self.on_select_faction,
            "request_start": self.on_request_start,
            "identify": self.on_identify,
            "register_participant": self.on_register_participant,
            "request_full_state": self.on_request_full_state,
            "request_final_state": self.on_request_final_state,
            "submit_bid": self.on_submit_bid,
            "decline": self.on_decline,
        }

    async def handle_message(self, connection_id: str, data: dict):
        msg_type = data.get("type") if isinstance(data, dict) else None
        handler = self.handlers.get(msg_type)
        if handler is None:
            self.send(connection_id, {"type": "error", "reason": f"unknown message type: {msg_type}"})
            return
        try:
            handler(connection_id, data)
        except KeyError as e:
            self.send(connection_id, {"type": "error", "reason": f"{msg_type} is missing {e.args[0]}"})
        except (TypeError, ValueError) as e:
            self.send(connection_id, {"type": "error", "reason": f"malformed {msg_type}: {e}"})
        except AuctionError as e:
            # Per-room problems never reach other rooms or kill the socket
            logger.debug("Ignored %s from %s: %s: %s", msg_type, connection_id, type(e).__name__, e)

    def on_disconnect(self, connection_id: str):
        self.registry.disconnect(connection_id)

    def shutdown(self):
        self.registry.evict_all()

    # --- Handlers ---

    def on_create_session(self, connection_id: str, data: dict):
        self.registry.create_session(data["participant_id"], connection_id)

    def on_create_solo_session(self, connection_id: str, data: dict):
        self.registry.create_solo_session(data["participant_id"], connection_id)

    def on_join_session(self, connection_id: str, data: dict):
        self.registry.join_session(data["room_code"], data["participant_id"], connection_id)

    def on_select_faction(self, connection_id: str, data: dict):
        self.registry.select_faction(data["room_code"], data["participant_id"], data["faction"])

    def on_request_start(self, connection_id: str, data: dict):
        self.registry.request_start(data["room_code"], data["participant_id"])

    def on_identify(self, connection_id: str, data: dict):
        self.registry.identify(data["room_code"], data["participant_id"], connection_id)

    def on_register_participant(self, connection_id: str, data: dict):
        self.registry.register_participant(data["room_code"], data["participant_id"], data["faction"])

    def on_request_full_state(self, connection_id: str, data: dict):
        self.registry.request_full_state(data["room_code"], data["participant_id"])

    def on_request_final_state(self, connection_id: str, data: dict):
        self.registry.request_final_state(data["room_code"], data["participant_id"])

    def on_submit_bid(self, connection_id: str, data: dict):
        bid = data["bid"]
        self.registry.submit_bid(data["room_code"], bid["faction_code"], bid["amount"])

    def on_decline(self, connection_id: str, data: dict):
        self.registry.decline(data["room_code"], data["faction_code"])


def create_app(manager: LiveAuctionManager = None) -> FastAPI:
    manager = manager or LiveAuctionManager()
    app = create_game_app(manager, title="Live Player Auction")

    @app.get("/rooms")
    async def list_rooms():
        return {"rooms": manager.registry.rooms()}

    return app


# For debugging/running directly
def run(host: str = "0.0.0.0", port: int = 8000):
    run_server(create_app(), host=host, port=port)


if __name__ == "__main__":
    run()
