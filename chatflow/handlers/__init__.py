"""Message handling: classification, reply actions, error reporting and dispatch."""
