"""Outbound API clients."""

from .identity import IdentityClient, normalise_identifier

__all__ = ["IdentityClient", "normalise_identifier"]
