"""Ollama Compass local agent: CLI and HTTP/WebSocket server."""
