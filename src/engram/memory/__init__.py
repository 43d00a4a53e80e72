"""
Engram memory engine.

Short-term and long-term memory stores, the access log, mind-map driven
recall and the Reflection/Promotion/Organization lifecycle.
"""

from engram.memory.capabilities import Model, TiktokenTokenizer, Tokenizer
from engram.memory.lifecycle import LifecycleEngine, LifecycleState
from engram.memory.recall import RecallEngine
from engram.memory.service import MemoryService

__all__ = [
    "LifecycleEngine",
    "LifecycleState",
    "MemoryService",
    "Model",
    "RecallEngine",
    "TiktokenTokenizer",
    "Tokenizer",
]
