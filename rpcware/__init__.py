"""Rate limiting, call-scoped structured logging and payload logging interceptors for RPC calls."""

__version__ = "0.1.0"