"""Pydantic models for the HTTP API and the live WebSocket protocol."""
