from __future__ import annotations

import asyncio
from concurrent.futures import Executor
from pathlib import Path
from typing import Optional, Union

from .errors import AttachmentError
from .part import Part
from .utils import guess_media_type

__all__ = ["AttachmentResolver", "media_type_for", "read_file"]

media_type_for = guess_media_type


def read_file(path: Union[str, Path]) -> bytes:
    """Blocking read of a whole file, the file is closed before returning."""
    with open(path, "rb") as f:
        return f.read()


class AttachmentResolver:
    """Loads files for ``attach`` into parts.

    Reads are blocking, so they run in an executor, the same way the sessions
    run a blocking ``perform`` off the event loop. Several resolutions may be
    in flight at the same time, ordering is the assembler's job.
    """

    def __init__(self, executor: Optional[Executor] = None):
        """
        Parameters:
            executor: executor for file reads, the loop's default one if not given.
        """
        self.executor = executor

    async def read(self, path: Union[str, Path]) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, read_file, path)

    async def resolve(
        self,
        path: Union[str, Path],
        display_name: Optional[str] = None,
        part: Optional[Part] = None,
    ) -> Part:
        """Read ``path`` and return a file part for it.

        Parameters:
            path: local file to upload.
            display_name: field name and remote filename, defaults to the base
                name of ``path``.
            part: a pending part created by ``Part.for_file`` to fill in, a new
                one is created if not given.

        Returns:
            the part, bound to the file content.

        Raises:
            AttachmentError: if the file is missing or cannot be read.
        """
        if part is None:
            part = Part.for_file(path, display_name)
        try:
            data = await self.read(path)
        except OSError as e:
            raise AttachmentError(path, e) from e
        return part.bind(data)
