"""
Background workers.

Currently only the reaper, which sweeps pastes that are no longer live.
"""

from __future__ import annotations

from .reaper import Reaper, start_reaper, stop_reaper

__all__ = ["Reaper", "start_reaper", "stop_reaper"]
