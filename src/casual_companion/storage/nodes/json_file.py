"""
Flat JSON file memory node storage.

Keeps all nodes in memory and rewrites the whole file after every change.
Good enough for a single-process companion with a few thousand memories.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from casual_companion.models import MemoryNode
from casual_companion.storage.nodes.memory import InMemoryNodeStore

logger = logging.getLogger(__name__)


class JsonFileNodeStore(InMemoryNodeStore):
    """
    MemoryNodeStore persisted to one JSON file.

    The file holds ``{"nodes": [...]}``. Writes go to a temporary file in the
    same directory which then replaces the original, so a crash never leaves
    a half-written file behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.info(f"No memory file at {self.path}, starting empty")
            return

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        for raw in data.get("nodes", []):
            node = MemoryNode.model_validate(raw)
            self._nodes[node.id] = node

        logger.info(f"Loaded {len(self._nodes)} memories from {self.path}")

    def _changed(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"nodes": [node.model_dump(mode="json") for node in self._nodes.values()]}

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp_path, self.path)
        except OSError:
            os.unlink(tmp_path)
            raise
