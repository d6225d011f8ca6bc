"""Conversation state machine: guards, transition table and engine."""
