#
# Asynchronous file adapter for memzip archives
#
import asyncio
from concurrent import futures
from typing import Any, Mapping, Optional, Sequence, Union

from .codecs import Codec
from .cursor import Buffer
from .errors import MemZipError
from .reader import ZipArchive, ZipEntry, extract
from .writer import DateTime, Name, build
try:
    import aiofiles
    aio_available = True
except ImportError:
    aio_available = False


__all__ = ("AioZipArchive", "save_archive")


def _require_aiofiles() -> None:
    if not aio_available:
        raise MemZipError("aiofiles module is required to read and write archives asynchronously")


class AioZipArchive:
    """
    Asynchronous wrapper around ZipArchive.

    The archive file is read into memory with aiofiles; parsing and
    extraction run on a single worker thread.
    """

    def __init__(self, archive: ZipArchive) -> None:
        self.archive = archive
        self.__tpex: futures.ThreadPoolExecutor

    def __get_executor(self) -> futures.ThreadPoolExecutor:
        try:
            return self.__tpex
        except AttributeError:
            self.__tpex = futures.ThreadPoolExecutor(max_workers=1)
            return self.__tpex

    async def _execute_aio_task(self, task: Any, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.__get_executor(), task, *args)

    @classmethod
    async def load(cls, path: str, codecs: Optional[Mapping[int, Codec]] = None) -> "AioZipArchive":
        """
        Read ``path`` and open it as an archive.

        Raises:
            InvalidArchiveError: If the file is not a well-formed archive.
        """
        _require_aiofiles()
        async with aiofiles.open(path, "rb") as fh:
            data = await fh.read()
        loop = asyncio.get_running_loop()
        archive = await loop.run_in_executor(None, ZipArchive, data, codecs)
        return cls(archive)

    async def __aenter__(self) -> "AioZipArchive":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        self.archive.close()
        try:
            self.__tpex.shutdown(wait=False)
        except AttributeError:
            pass

    async def extract(self, entry: ZipEntry, dest: Buffer, capacity: Optional[int] = None) -> int:
        return await self._execute_aio_task(extract, entry, dest, capacity)

    async def read(self, name: Union[str, bytes]) -> bytes:
        return await self._execute_aio_task(self.archive.read, name)

    async def test(self) -> Optional[str]:
        return await self._execute_aio_task(self.archive.test)


async def save_archive(path: str, names: Sequence[Name], payloads: Sequence[Buffer],
                       date_time: Optional[DateTime] = None) -> int:
    """
    Build a store-only archive and write it to ``path``.

    Returns:
        Size of the written archive.
    """
    _require_aiofiles()
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(None, build, names, payloads, date_time)
    async with aiofiles.open(path, "wb") as fh:
        await fh.write(data)
    return len(data)
