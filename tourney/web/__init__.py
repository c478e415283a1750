"""
Web interface module for tourney.

Provides a FastAPI server for:
- Creating, starting and ending tournament matches
- Playing moves with server-side clocks
- Watching matches live over WebSocket
"""
