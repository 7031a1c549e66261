from __future__ import annotations

import asyncio
import warnings
from collections.abc import AsyncIterator
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Union

from .attachment import AttachmentResolver
from .boundary import generate_boundary
from .const import CRLF, DASHES, MULTIPART_FORM_DATA
from .errors import FormDataError, InvalidStateError
from .headers import content_disposition, parse_header_value
from .part import Part
from .utils import (
    DEBUG_DATA_OUT,
    DEBUG_HEADER_OUT,
    FormDataWarning,
    debug_function_default,
)

__all__ = ["Multipart"]


class _Slot:
    """A position in the body, filled once its part is ready to encode."""

    __slots__ = ("part", "path", "task", "error")

    def __init__(self, part: Part, path: Optional[Union[str, Path]] = None):
        self.part = part
        self.path = path
        self.task: Optional[asyncio.Task] = None
        self.error: Optional[BaseException] = None


class Multipart:
    """Assembles an ordered list of parts into a multipart/form-data body.

    Parts are emitted strictly in the order they were added. File parts are
    read concurrently, but a part that finishes reading early waits in its slot
    until every part before it has been emitted.

    The body is open until :meth:`close` is called, :meth:`stream` keeps
    following new slots until then.

    Example:

        mp = Multipart()
        mp.add_field("name", "tobi")
        mp.add_file("avatar.png")
        body = await mp.encode()
    """

    def __init__(
        self,
        boundary: Optional[str] = None,
        resolver: Optional[AttachmentResolver] = None,
        debug: Union[bool, Callable[[int, bytes], None]] = False,
    ):
        """
        Parameters:
            boundary: boundary to use, a random one is generated by default.
            resolver: attachment resolver for file parts.
            debug: print the encoded body to stderr, or a ``callback(type, data)``
                that receives it.
        """
        self._boundary = boundary or generate_boundary()
        self.resolver = resolver or AttachmentResolver()
        if debug is True:
            self._debug: Optional[Callable[[int, bytes], None]] = debug_function_default
        else:
            self._debug = debug or None
        self._slots: list[_Slot] = []
        self._changed: Optional[asyncio.Event] = None
        self._closed = False
        self._started = False
        self._emitted = False
        self._aborted = False

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"<Multipart boundary={self._boundary!r} parts={len(self._slots)}>"

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def parts(self) -> list[Part]:
        return [slot.part for slot in self._slots]

    @property
    def closed(self) -> bool:
        return self._closed

    # building

    def _append(self, slot: _Slot) -> None:
        if self._closed:
            raise InvalidStateError("Cannot add a part, the multipart body is closed.")
        self._slots.append(slot)
        self._start(slot)
        self._signal()

    def _start(self, slot: _Slot) -> Optional[asyncio.Task]:
        if slot.task is not None or slot.path is None:
            return slot.task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet, the read starts with the stream
            return None
        slot.task = loop.create_task(
            self.resolver.resolve(slot.path, part=slot.part)
        )
        slot.task.add_done_callback(partial(self._read_done, slot))
        return slot.task

    def _read_done(self, slot: _Slot, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        # retrieved here, so a body that is never streamed reports nothing
        slot.error = task.exception()
        self._signal()

    def _signal(self) -> None:
        if self._changed is not None:
            self._changed.set()

    def add(self, part: Optional[Part] = None) -> Part:
        """Append a part, a new empty one if not given, and return it."""
        part = part if part is not None else Part()
        self._append(_Slot(part))
        return part

    def add_field(self, name: str, value: Union[str, bytes]) -> Part:
        """Append a ``form-data`` field with a text value."""
        part = Part({"Content-Disposition": content_disposition("form-data", name=name)})
        part.write(value)
        self._append(_Slot(part))
        return part

    def add_file(self, path: Union[str, Path], name: Optional[str] = None) -> Part:
        """Append a file part, the file is read in the background.

        Parameters:
            path: local file to upload.
            name: field name and remote filename, defaults to the base name of
                ``path``.
        """
        part = Part.for_file(path, name)
        self._append(_Slot(part, path))
        return part

    def close(self) -> None:
        """Signal that no more parts will be added."""
        self._closed = True
        self._signal()

    def content_type(self, existing: Optional[str] = None) -> str:
        """Value for the outer request ``Content-Type`` header.

        ``multipart/form-data; boundary=...`` if ``existing`` is empty. A multipart
        type without a boundary gets the boundary appended, and a multipart type
        with a boundary is kept as is, its boundary is used for the body. Other
        types are kept, with a warning, since the body will not match them.
        """
        if not existing:
            return f"{MULTIPART_FORM_DATA}; boundary={self._boundary}"
        main, params = parse_header_value(existing)
        if not main.startswith("multipart/"):
            warnings.warn(
                f"Content-Type {existing!r} is not multipart, "
                "the multipart body is sent with it anyway.",
                FormDataWarning,
                stacklevel=2,
            )
            return existing
        if params.get("boundary"):
            if params["boundary"] != self._boundary:
                if self._emitted:
                    raise InvalidStateError(
                        "Cannot change the boundary, the body is already streaming."
                    )
                self._boundary = params["boundary"]
            return existing
        return f"{existing.rstrip().rstrip(';')}; boundary={self._boundary}"

    # encoding

    def _emit(self, type_: int, data: bytes) -> bytes:
        self._emitted = True
        if self._debug is not None:
            self._debug(type_, data)
        return data

    async def _wait_for_change(self) -> None:
        if self._changed is None:
            self._changed = asyncio.Event()
        self._changed.clear()
        await self._changed.wait()

    def _failure(self) -> Optional[BaseException]:
        """The failed read of the earliest declared slot, if any read failed."""
        for slot in self._slots:
            task = slot.task
            if slot.error is None and task is not None and task.done():
                # done callbacks run a loop iteration after the task finishes
                if not task.cancelled():
                    slot.error = task.exception()
            if slot.error is not None:
                return slot.error
        return None

    async def stream(self) -> AsyncIterator[bytes]:
        """Encode the body chunk by chunk.

        Each part is emitted as its delimiter and header block, then its
        content, then a line break. The closing delimiter follows the last part
        once the body is closed.

        A failed file read ends the stream as soon as it is known, even while
        an earlier part is still being read. Nothing more is emitted.

        Raises:
            AttachmentError: the earliest declared file that failed to load.
            InvalidStateError: if the body was already streamed or aborted.
        """
        if self._started:
            raise InvalidStateError("The multipart body can only be streamed once.")
        if self._aborted:
            raise InvalidStateError("The multipart body was aborted.")
        self._started = True

        for slot in self._slots:
            self._start(slot)

        cursor = 0
        try:
            while True:
                if self._aborted:
                    raise InvalidStateError("The multipart body was aborted.")
                error = self._failure()
                if error is not None:
                    raise error
                if cursor < len(self._slots):
                    slot = self._slots[cursor]
                    if slot.task is not None and not slot.task.done():
                        await self._wait_for_change()
                        continue
                    if slot.task is not None and slot.task.cancelled():
                        raise InvalidStateError(
                            f"The read of {slot.path!s} was cancelled."
                        )
                    finalized = slot.part.finalize()
                    cursor += 1
                    delimiter = DASHES + self._boundary.encode()
                    if delimiter in finalized.content:
                        raise FormDataError(
                            f"Part {finalized.name!r} contains the boundary, "
                            "the body cannot be delimited."
                        )
                    yield self._emit(
                        DEBUG_HEADER_OUT, delimiter + CRLF + finalized.header_block()
                    )
                    if finalized.content:
                        yield self._emit(DEBUG_DATA_OUT, finalized.content)
                    yield self._emit(DEBUG_DATA_OUT, CRLF)
                elif self._closed:
                    break
                else:
                    await self._wait_for_change()
            yield self._emit(
                DEBUG_HEADER_OUT, DASHES + self._boundary.encode() + DASHES + CRLF
            )
        finally:
            await self._cancel_pending()

    async def encode(self) -> bytes:
        """Close the body and return it in one piece."""
        self.close()
        chunks = []
        async for chunk in self.stream():
            chunks.append(chunk)
        return b"".join(chunks)

    async def _cancel_pending(self) -> None:
        tasks = [slot.task for slot in self._slots if slot.task and not slot.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Abort the body, in-flight file reads are cancelled and their results
        discarded. Safe to call more than once."""
        self._aborted = True
        self._closed = True
        self._signal()
        await self._cancel_pending()
