"""Client-side helpers for talking to the Papad Store API"""
from papad_store.client.api_client import ApiClient, SessionExpiredError, TokenStore

__all__ = ["ApiClient", "SessionExpiredError", "TokenStore"]
