"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_epoch_seconds, from_epoch_seconds
