"""Live WebSocket sessions: per-connection state, dispatch and teardown."""
