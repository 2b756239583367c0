"""
File Command Dispatcher

Create/read/delete/list against the fixed workspace root. Each command is
handled on its own, independent of the conversation stream.

Path resolution:
    "" or "."                 -> workspace root
    "<workspace>/..."         -> used as-is (already resolved)
    "/a/b.txt"                -> <workspace>/a/b.txt
    "a/b.txt"                 -> <workspace>/a/b.txt

``..`` segments are normalised but not rejected, so a path can name a
location outside the workspace.
"""

import base64
import os
from typing import Any, Dict, List, Optional

from ..runtime.errors import FileOperationFailure
from ..runtime.types import (
    CreateFileCommand,
    DeleteFileCommand,
    FileCommand,
    FileEncoding,
    InboundType,
    ListFilesCommand,
    ReadFileCommand,
    file_result_event,
)
from ...utils.logger import get_logger

logger = get_logger(__name__)


class FileCommandDispatcher:
    """Runs file commands inside one workspace directory."""

    def __init__(self, workspace_dir: str):
        self.workspace_dir = os.path.abspath(os.path.expanduser(workspace_dir))
        os.makedirs(self.workspace_dir, exist_ok=True)

    def resolve(self, path: Optional[str]) -> str:
        if not path or path == ".":
            return self.workspace_dir

        root = self.workspace_dir
        if path == root or path.startswith(root + os.sep):
            return os.path.normpath(path)

        relative = path.lstrip("/\\")
        return os.path.normpath(os.path.join(root, relative))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_file(self, path: str, content: str, encoding: FileEncoding = FileEncoding.UTF8) -> None:
        """Write ``content`` to ``path``, replacing any existing file."""
        target = self.resolve(path)
        try:
            if encoding is FileEncoding.BASE64:
                # Characters outside the alphabet, such as line breaks, are skipped
                data = base64.b64decode(content)
            else:
                data = content.encode("utf-8")
            with open(target, "wb") as f:
                f.write(data)
        except (OSError, ValueError) as e:
            raise FileOperationFailure(InboundType.CREATE_FILE.value, str(e), e) from e

        logger.info("File created", path=path, size=len(data), encoding=encoding.value)

    def read_file(self, path: str, encoding: FileEncoding = FileEncoding.UTF8) -> str:
        """Return the file as utf-8 text or as base64 of its raw bytes."""
        target = self.resolve(path)
        try:
            with open(target, "rb") as f:
                data = f.read()
            if encoding is FileEncoding.BASE64:
                content = base64.b64encode(data).decode("ascii")
            else:
                content = data.decode("utf-8")
        except (OSError, ValueError) as e:
            raise FileOperationFailure(InboundType.READ_FILE.value, str(e), e) from e

        logger.debug("File read", path=path, size=len(data), encoding=encoding.value)
        return content

    def delete_file(self, path: str) -> None:
        target = self.resolve(path)
        try:
            os.unlink(target)
        except (OSError, ValueError) as e:
            raise FileOperationFailure(InboundType.DELETE_FILE.value, str(e), e) from e

        logger.info("File deleted", path=path)

    def list_files(self, path: Optional[str] = None) -> List[str]:
        """Names of the direct entries of a directory (workspace root by default)."""
        target = self.resolve(path)
        try:
            names = sorted(os.listdir(target))
        except (OSError, ValueError) as e:
            raise FileOperationFailure(InboundType.LIST_FILES.value, str(e), e) from e

        logger.debug("Files listed", path=path or ".", count=len(names))
        return names

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, command: FileCommand) -> Dict[str, Any]:
        """
        Run one command and build its ``file_result`` event.

        Raises:
            FileOperationFailure: if the operation failed
        """
        if isinstance(command, CreateFileCommand):
            self.create_file(command.path, command.content, command.encoding)
            return file_result_event(command.type, "success")

        if isinstance(command, ReadFileCommand):
            content = self.read_file(command.path, command.encoding)
            return file_result_event(command.type, content, command.encoding)

        if isinstance(command, DeleteFileCommand):
            self.delete_file(command.path)
            return file_result_event(command.type, "success")

        if isinstance(command, ListFilesCommand):
            return file_result_event(command.type, self.list_files(command.path))

        raise TypeError(f"Not a file command: {command!r}")
