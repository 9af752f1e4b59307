"""Game state, networking and an authoritative server for a small multiplayer arena game."""

__version__ = "0.1.0"