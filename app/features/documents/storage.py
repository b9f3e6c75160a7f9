"""
Content store for uploaded document bytes.

The workflow only needs put/get/delete by relative path; the local
filesystem implementation is the default and other backends can be swapped
in through the `get_content_store` dependency.
"""
import abc
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from app.core import config


class ContentStore(abc.ABC):
    @abc.abstractmethod
    async def save(self, path: str, data: bytes) -> None: ...

    @abc.abstractmethod
    async def load(self, path: str) -> bytes: ...

    @abc.abstractmethod
    async def delete(self, path: str) -> None: ...


class LocalContentStore(ContentStore):
    """Stores blobs under a root directory, one file per path."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Path escapes content store: {path}")
        return target

    def _write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def save(self, path: str, data: bytes) -> None:
        await run_in_threadpool(self._write, path, data)

    async def load(self, path: str) -> bytes:
        return await run_in_threadpool(self._resolve(path).read_bytes)

    async def delete(self, path: str) -> None:
        await run_in_threadpool(self._resolve(path).unlink, True)


def get_content_store() -> ContentStore:
    """FastAPI dependency; override in tests or to use another backend."""
    return LocalContentStore(config.DOCUMENT_STORAGE_DIR)
