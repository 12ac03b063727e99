"""Gazelle tracker API access."""

from .gazelle_client import GazelleServiceAdapter
from .protocols import TrackerClient
from .types import TorrentQuery

__all__ = ["GazelleServiceAdapter", "TorrentQuery", "TrackerClient"]
