"""
WebSocket handlers for real-time match updates.
"""
from typing import Dict, Optional, Set
from fastapi import WebSocket

from tourney.errors import TourneyError
from tourney.game.serialization import parse_move_positions, serialize_position
from tourney.tournament.lifecycle import MatchLifecycle


class ConnectionManager:
    """Manages WebSocket connections for matches."""

    def __init__(self):
        # Map match_id -> set of connected WebSockets
        self.connections: Dict[str, Set[WebSocket]] = {}
        # Map websocket -> match_id
        self.socket_matches: Dict[WebSocket, str] = {}

    async def connect(self, websocket: WebSocket, match_id: str):
        """Connect a WebSocket to a match."""
        await websocket.accept()

        if match_id not in self.connections:
            self.connections[match_id] = set()

        self.connections[match_id].add(websocket)
        self.socket_matches[websocket] = match_id

    def disconnect(self, websocket: WebSocket):
        """Disconnect a WebSocket."""
        match_id = self.socket_matches.get(websocket)
        if match_id and match_id in self.connections:
            self.connections[match_id].discard(websocket)
            if not self.connections[match_id]:
                del self.connections[match_id]
        if websocket in self.socket_matches:
            del self.socket_matches[websocket]

    async def broadcast(self, match_id: str, message: dict):
        """Broadcast a message to all connections for a match."""
        if match_id in self.connections:
            dead_sockets = set()
            for websocket in list(self.connections[match_id]):
                try:
                    await websocket.send_json(message)
                except Exception:
                    dead_sockets.add(websocket)

            # Clean up dead connections
            for ws in dead_sockets:
                self.disconnect(ws)

    async def send_personal(self, websocket: WebSocket, message: dict):
        """Send a message to a specific WebSocket."""
        try:
            await websocket.send_json(message)
        except Exception:
            self.disconnect(websocket)


class MatchWebSocketHandler:
    """Handles WebSocket messages for a match."""

    def __init__(self, connection_manager: ConnectionManager, lifecycle: MatchLifecycle):
        self.manager = connection_manager
        self.lifecycle = lifecycle

    async def handle_message(self, websocket: WebSocket, match_id: str,
                             user_id: Optional[str], data: dict):
        """
        Handle an incoming WebSocket message.

        Args:
            websocket: The WebSocket connection
            match_id: Match ID
            user_id: Caller identity bound to the connection (None = anonymous)
            data: Parsed JSON message
        """
        msg_type = data.get("type")

        handlers = {
            "get_state": self.handle_get_state,
            "move": self.handle_move,
            "ping": self.handle_ping,
        }

        handler = handlers.get(msg_type)
        if not handler:
            await self.send_error(websocket, f"Unknown message type: {msg_type}")
            return

        try:
            await handler(websocket, match_id, user_id, data)
        except TourneyError as e:
            await self.send_error(websocket, e.message, type(e).__name__)
        except ValueError as e:
            await self.send_error(websocket, str(e))

    async def handle_get_state(self, websocket: WebSocket, match_id: str,
                               user_id: Optional[str], data: dict):
        """Send current match state."""
        state = self.lifecycle.match_view(user_id, match_id)
        await self.manager.send_personal(websocket, {
            "type": "state",
            "state": state
        })

    async def handle_move(self, websocket: WebSocket, match_id: str,
                          user_id: Optional[str], data: dict):
        """Handle a player making a move."""
        try:
            from_pos, to_pos = parse_move_positions(data["from"], data["to"])
        except (KeyError, TypeError, ValueError):
            await self.send_error(websocket, "Invalid position format")
            return

        payload = data.get("payload")
        if payload is not None and not isinstance(payload, str):
            await self.send_error(websocket, "payload must be a string")
            return

        outcome = self.lifecycle.apply_move(user_id, match_id, from_pos, to_pos, payload)

        # Broadcast move to all observers
        await self.manager.broadcast(match_id, {
            "type": "move_made",
            "color": outcome.debit.color,
            "notation": outcome.notation,
            "from": serialize_position(from_pos),
            "to": serialize_position(to_pos),
        })
        await self.push_state(match_id, user_id)

    async def handle_ping(self, websocket: WebSocket, match_id: str,
                          user_id: Optional[str], data: dict):
        """Respond to ping."""
        await self.manager.send_personal(websocket, {"type": "pong"})

    async def push_state(self, match_id: str, user_id: Optional[str]):
        """Broadcast the current match view to every observer."""
        state = self.lifecycle.match_view(user_id, match_id)
        await self.manager.broadcast(match_id, {"type": "state", "state": state})
        if state["status"] in ("completed", "cancelled"):
            await self.manager.broadcast(match_id, {
                "type": "match_over",
                "status": state["status"],
                "winner_id": state["winner_id"]
            })

    async def send_error(self, websocket: WebSocket, message: str, error: str = "error"):
        """Send an error message."""
        await self.manager.send_personal(websocket, {
            "type": "error",
            "error": error,
            "message": message
        })
