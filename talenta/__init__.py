"""Talenta audio editing client: segment playlists, recording and API sync."""

__version__ = "0.1.0"
