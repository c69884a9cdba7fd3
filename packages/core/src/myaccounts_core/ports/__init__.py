"""Core ports."""

from __future__ import annotations

from .background_worker import IBackgroundWorker

__all__: list[str] = ["IBackgroundWorker"]
