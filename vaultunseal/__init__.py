"""Vault unseal strategies, retry policy and the errors they raise."""

__version__ = "0.1.0"
__all__ = ["errors", "strategy"]