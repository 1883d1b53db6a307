"""Hilm: chat-driven personal-finance assistant backend."""
