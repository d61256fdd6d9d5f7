"""Pluggable authentication: handlers, managers, token and session drivers."""

__all__ = ["base", "manager", "sessions", "tokens"]