"""Per-user memory graph: importance, write gate, recall, decay, rehearsal."""

from casual_companion.memory.extractor import LLMMemoryExtracter
from casual_companion.memory.graph import MaintenanceReport, MemoryGraph, MemoryStats
from casual_companion.memory.importance import calculate_importance, passes_write_gate

__all__ = [
    "LLMMemoryExtracter",
    "MaintenanceReport",
    "MemoryGraph",
    "MemoryStats",
    "calculate_importance",
    "passes_write_gate",
]
