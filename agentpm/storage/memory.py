"""In-memory epic storage for tests.

Documents are held as encoded XML so that every load returns a fresh,
independent Epic, exactly as the file store does.
"""

from pathlib import Path

from agentpm.storage import xml_codec
from agentpm.workflow.errors import StorageError
from agentpm.workflow.models import Epic


class MemoryStore:
    """Dict-backed store keyed by path string."""

    def __init__(self):
        self.documents: dict[str, str] = {}
        self.save_count = 0

    def exists(self, path: Path) -> bool:
        return str(path) in self.documents

    def load(self, path: Path) -> Epic:
        try:
            text = self.documents[str(path)]
        except KeyError:
            raise StorageError("Epic file not found", str(path)) from None
        return xml_codec.loads(text)

    def save(self, epic: Epic, path: Path) -> None:
        self.documents[str(path)] = xml_codec.dumps(epic)
        self.save_count += 1
