"""Paper trading (simulation only)."""

from .tracker import PaperTracker

__all__ = ["PaperTracker"]
