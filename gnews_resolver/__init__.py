"""Google News link resolver package.

Turns the opaque article links found in Google News RSS feeds into the
publisher URLs behind them, degrading to the original link when every
strategy fails.

Updates: v0.1 - 2026-10-15 - Created package scaffold.
"""

from .models import CostEnvironment
from .proxy import NullProxyProvider, RotatingProxyProvider
from .resolver import GoogleNewsResolver

__all__ = ["CostEnvironment", "GoogleNewsResolver", "NullProxyProvider", "RotatingProxyProvider"]
