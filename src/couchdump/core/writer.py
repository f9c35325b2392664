"""
Writers that turn a header and change records into dump files.

StreamWriter writes a single dump straight to a stream. SplitWriter
partitions the records into files of at least `split` documents, each
starting with the header, and finalizes full files in the background while
the next one is being filled.
"""
import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, TextIO

from couchdump.core.records import ChangeRecord, DumpHeader
from couchdump.exceptions import WriteError
from couchdump.utils import split_file_name

logger = logging.getLogger('couchdump')


class DumpWriter:
    def __init__(self, header: DumpHeader):
        self.header = header
        self.records_written = 0
        self.docs_written = 0
        self.files_written: List[str] = []

    async def write(self, record: ChangeRecord):
        raise NotImplementedError()

    async def finish(self):
        """Flush everything and wait until all output is on disk"""
        raise NotImplementedError()

    async def abort(self):
        """Stop after a failure without starting any new output"""
        raise NotImplementedError()


class StreamWriter(DumpWriter):
    def __init__(self, header: DumpHeader, stream: TextIO, name: str = "<stdout>"):
        super().__init__(header)
        self.stream = stream
        self.name = name
        self._write_line(header.encode())

    def _write_line(self, line: str):
        try:
            self.stream.write(line + "\n")
        except OSError as e:
            raise WriteError(f"Could not write to {self.name}: {e}") from e

    async def write(self, record: ChangeRecord):
        self._write_line(record.encode())
        self.records_written += 1
        self.docs_written += record.doc_count

    async def finish(self):
        try:
            self.stream.flush()
        except OSError as e:
            raise WriteError(f"Could not write to {self.name}: {e}") from e
        self.files_written.append(self.name)

    async def abort(self):
        try:
            self.stream.flush()
        except OSError:
            logger.warning(f"Could not flush {self.name} after failure")


def write_dump_file(path: str, lines: List[str]):
    """Write lines to path through a temporary file so readers never see half a file"""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    except OSError as e:
        raise WriteError(f"Could not create {path}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            for line in lines:
                fh.write(line)
                fh.write("\n")
        os.replace(tmp, str(target))
    except OSError as e:
        raise WriteError(f"Could not write {path}: {e}") from e
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


class SplitWriter(DumpWriter):
    def __init__(self, header: DumpHeader, output_file: str, split: int):
        if split < 1:
            raise ValueError(f"split must be positive, got {split}")
        super().__init__(header)
        self.output_file = output_file
        self.split = split
        self.file_index = 0
        self._buffer: List[str] = []
        self._docs_in_file = 0
        self._pending: List[asyncio.Future] = []

    @property
    def pending(self) -> int:
        return sum(1 for future in self._pending if not future.done())

    def _raise_failed(self):
        for future in self._pending:
            if future.done() and not future.cancelled() and future.exception() is not None:
                raise future.exception()

    def _finalize(self):
        path = split_file_name(self.output_file, self.file_index)
        lines = [self.header.encode()] + self._buffer
        logger.debug(f"Finalizing {path} ({self._docs_in_file} docs)")
        loop = asyncio.get_running_loop()
        self._pending.append(loop.run_in_executor(None, write_dump_file, path, lines))
        self.files_written.append(path)
        self._buffer = []
        self._docs_in_file = 0
        self.file_index += 1

    async def write(self, record: ChangeRecord):
        self._raise_failed()
        self._buffer.append(record.encode())
        self.records_written += 1
        self.docs_written += record.doc_count
        self._docs_in_file += record.doc_count
        if self._docs_in_file >= self.split:
            self._finalize()

    async def _wait_pending(self):
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def finish(self):
        self._raise_failed()
        # an empty database still gets one header-only file
        if self._buffer or self.file_index == 0:
            self._finalize()
        await self._wait_pending()
        logger.info(f"Wrote {len(self.files_written)} file(s), {self.docs_written} docs")

    async def abort(self):
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        failed = sum(1 for result in results if isinstance(result, BaseException))
        logger.warning(f"Export aborted: {len(results) - failed} file(s) finalized, "
                       f"{len(self._buffer)} buffered record(s) discarded")
