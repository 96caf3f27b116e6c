"""Reconciling client for the live quiz API."""

from .live_client import INVALIDATIONS, LiveQuizClient, Resource

__all__ = ["INVALIDATIONS", "LiveQuizClient", "Resource"]
