"""
Sports Feed Engine Core Library.

Demand-driven refresh of per-sport datasets from a rate-limited provider:
cache, fetch coordination with fallback-by-date, subscription tracking,
refresh scheduling and broadcast.

Usage:
    # Config
    from sportsfeed.config import get_settings, Settings

    # Engine
    from sportsfeed.engine import FeedEngine, build_engine

    # Logging
    from sportsfeed.logging import get_logger, configure_logging, log_context
"""

__version__ = "1.0.0"
