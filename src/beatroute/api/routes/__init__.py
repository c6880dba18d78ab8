"""Route group exports."""

from . import beats, health, routes

__all__ = ["beats", "health", "routes"]
