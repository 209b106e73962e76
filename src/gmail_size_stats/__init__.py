"""gmail-size-stats - mirror Gmail message metadata into MongoDB.

This package incrementally imports message ids and labels from Gmail,
enriches every message with its size, labels and date through a pool of
concurrent workers, and reports storage usage per label.
"""

__version__ = "0.1.0"

from gmail_size_stats.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
