"""MongoDB persistence for mirrored messages and labels."""

from .mongo import Store, connect
from .repository import LabelRepository, MessageRepository, SizeStats

__all__ = ["LabelRepository", "MessageRepository", "SizeStats", "Store", "connect"]
