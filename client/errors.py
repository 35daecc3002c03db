"""
Exception hierarchy for the zoomies client.

Library code raises these; only the CLI boundary (``zoomies.py``) catches
them and turns them into an exit status.
"""
from __future__ import annotations


class ZoomiesError(Exception):
    """Base class for every error raised by the client package."""


class ValidationError(ZoomiesError, ValueError):
    """A configuration value is outside its allowed range."""


class TokenError(ZoomiesError):
    """The fast.com API rejected the access token (HTTP 403)."""


class ScriptNotFoundError(ZoomiesError):
    """The fast.com landing page has no ``<script src=...>`` tag."""


class TokenNotFoundError(ZoomiesError):
    """The fast.com application script does not contain a token."""


class NoCandidatesError(ZoomiesError):
    """Ranking was requested for an empty candidate list."""


class ProbeError(ZoomiesError):
    """A single round-trip measurement against one server failed."""


class InvalidServerURLError(ZoomiesError, ValueError):
    """A server URL could not be parsed into scheme + host."""
