"""
Memory Storage

File-backed stores for the short-term memory document, long-term memory
documents and the access log, together with their text formats and the
per-path lock registry they share.
"""

from engram.memory.storage.access_log import AccessLog, LogSnapshot
from engram.memory.storage.locks import FileLockHandle, FileLockManager, get_lock_manager
from engram.memory.storage.long_term import LongTermStore, normalize_relative_path
from engram.memory.storage.mind_map import MindMap, MindMapNode
from engram.memory.storage.relations import Relation, RelationIndex
from engram.memory.storage.short_term import ShortTermStore

__all__ = [
    "AccessLog",
    "FileLockHandle",
    "FileLockManager",
    "LogSnapshot",
    "LongTermStore",
    "MindMap",
    "MindMapNode",
    "Relation",
    "RelationIndex",
    "ShortTermStore",
    "get_lock_manager",
    "normalize_relative_path",
]
