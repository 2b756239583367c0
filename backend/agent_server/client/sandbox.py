"""
E2B sandbox provider for the client.

Creates the isolated environment the relay server runs in and exposes
its host for a port. File helpers operate directly on the sandbox
filesystem, bypassing the relay.
"""

from typing import Any, Awaitable, Callable, List, Literal, Optional, Union

from e2b import AsyncSandbox

from ...utils.logger import get_logger

logger = get_logger(__name__)


class SandboxProvider:
    """Thin wrapper around one ``e2b.AsyncSandbox``."""

    def __init__(self):
        self._sandbox: Optional[AsyncSandbox] = None

    @property
    def sandbox(self) -> AsyncSandbox:
        if self._sandbox is None:
            raise RuntimeError("Sandbox not initialized")
        return self._sandbox

    @property
    def sandbox_id(self) -> Optional[str]:
        return self._sandbox.sandbox_id if self._sandbox else None

    async def create(self, template: str, api_key: str, timeout_ms: int) -> AsyncSandbox:
        logger.info("Creating sandbox", template=template)
        self._sandbox = await AsyncSandbox.create(
            template=template,
            api_key=api_key,
            timeout=max(1, timeout_ms // 1000),
        )
        logger.info("Sandbox created", sandbox_id=self._sandbox.sandbox_id)
        return self._sandbox

    def host(self, port: int) -> str:
        return self.sandbox.get_host(port)

    async def kill(self) -> None:
        if self._sandbox is None:
            return
        sandbox_id = self._sandbox.sandbox_id
        await self._sandbox.kill()
        self._sandbox = None
        logger.info("Sandbox killed", sandbox_id=sandbox_id)

    # ------------------------------------------------------------------
    # Sandbox filesystem
    # ------------------------------------------------------------------

    async def write_file(self, path: str, content: Union[str, bytes]) -> Any:
        return await self.sandbox.files.write(path, content)

    async def read_file(self, path: str, format: Literal["text", "bytes"] = "text") -> Union[str, bytearray]:
        if format == "bytes":
            return await self.sandbox.files.read(path, format="bytes")
        return await self.sandbox.files.read(path)

    async def remove_file(self, path: str) -> None:
        await self.sandbox.files.remove(path)

    async def list_files(self, path: str = ".") -> List[Any]:
        return await self.sandbox.files.list(path)

    async def watch_dir(
        self,
        path: str,
        on_event: Callable[[Any], Union[None, Awaitable[None]]],
        recursive: bool = False,
        on_exit: Optional[Callable[[Optional[Exception]], Union[None, Awaitable[None]]]] = None,
    ) -> Any:
        return await self.sandbox.files.watch_dir(
            path,
            on_event=on_event,
            recursive=recursive,
            on_exit=on_exit,
        )
