class ConnectionUnavailableError(Exception):
    """Raised when no primary store session can be acquired."""
