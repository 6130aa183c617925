"""
File-backed epic storage.

Saves are atomic: the document is written to a temporary file in the same
directory, fsynced, then renamed over the original. A crash leaves either
the old document or the new one, never a partial write.
"""

import logging
import os
import tempfile
from pathlib import Path

from agentpm.storage import xml_codec
from agentpm.workflow.errors import StorageError
from agentpm.workflow.models import Epic

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via temp file + fsync + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class FileStore:
    """Loads and saves epics as XML files."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def load(self, path: Path) -> Epic:
        """Read and decode an epic document.

        Raises:
            StorageError: If the file is missing or unreadable
            ValidationError: If the XML is malformed or holds unknown values
        """
        path = Path(path)
        if not path.is_file():
            raise StorageError("Epic file not found", str(path))
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read epic: {e}", str(path)) from e

        epic = xml_codec.loads(text)
        logger.debug(f"[STORE] loaded {epic.id} from {path}")
        return epic

    def save(self, epic: Epic, path: Path) -> None:
        """Encode and atomically replace the epic document.

        Raises:
            StorageError: If the write fails
        """
        path = Path(path)
        try:
            atomic_write_text(path, xml_codec.dumps(epic))
        except OSError as e:
            raise StorageError(f"Failed to save epic: {e}", str(path)) from e
        logger.debug(f"[STORE] saved {epic.id} to {path}")
