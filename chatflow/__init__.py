"""chatflow: a per-conversation state machine front-end for chat bots."""

__version__ = "0.1.0"
