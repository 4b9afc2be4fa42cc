"""Process-lifetime cache of compiled command descriptors.

Caches one CommandDescriptor per resolved descriptor path. Entries are
never evicted; call invalidate() after changing descriptor files.
Compiled descriptors are immutable, so a cached entry is shared safely
across concurrent requests.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from pathlib import Path

from dataservice.models import CommandDescriptor
from dataservice.services.command_compiler import compile_descriptor_file

logger = logging.getLogger(__name__)


class CommandCache:
    """Memoizes compile_descriptor_file results by resolved path."""

    def __init__(
        self,
        compiler: Callable[[Path], CommandDescriptor] = compile_descriptor_file,
    ) -> None:
        self._compiler = compiler
        self._lock = threading.Lock()
        self._entries: dict[Path, CommandDescriptor] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, path: str | Path) -> CommandDescriptor | None:
        with self._lock:
            return self._entries.get(Path(path).resolve())

    async def get_or_compile(self, path: str | Path) -> CommandDescriptor:
        """Return the cached descriptor for path, compiling it on first use.

        Compilation runs off the event loop. Failed compiles are not cached.
        """
        key = Path(path).resolve()
        cached = self.get(key)
        if cached is not None:
            return cached

        descriptor = await asyncio.to_thread(self._compiler, key)
        with self._lock:
            # Another request may have compiled the same file meanwhile
            descriptor = self._entries.setdefault(key, descriptor)
        logger.info("Compiled command descriptor %s", key.name)
        return descriptor

    def invalidate(self) -> None:
        """Drop all cached descriptors."""
        with self._lock:
            self._entries.clear()
