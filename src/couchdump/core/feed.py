"""Consumes a Source Database's change feed as dump records"""
import asyncio
import logging
from typing import AsyncIterator, Optional

from couchdump.config import DEFAULT_BATCH_SIZE, DUMP_FORMAT_VERSION
from couchdump.core.records import ChangeRecord, DumpHeader
from couchdump.core.sources import Source
from couchdump.exceptions import CouchDumpError, FeedError

logger = logging.getLogger('couchdump')

_END = object()


class ChangeFeed:
    """
    Ordered, lazy stream of change records for one export.

    open() checks the source and builds the header; iterating yields one
    ChangeRecord per batch. Blocking source calls run in the default executor
    so file finalization can proceed meanwhile.
    """

    def __init__(self, source: Source, batch_size: int = DEFAULT_BATCH_SIZE,
                 format_version: str = DUMP_FORMAT_VERSION):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.source = source
        self.batch_size = batch_size
        self.format_version = format_version
        self.header: Optional[DumpHeader] = None

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def open(self) -> DumpHeader:
        await self._run(self.source.probe)
        try:
            db_info = await self._run(self.source.info)
        except CouchDumpError:
            raise
        except Exception as e:
            raise FeedError(f"Could not read database info from {self.source.display_name}: {e}") from e
        if 'update_seq' not in db_info:
            logger.warning(f"{self.source.display_name} did not report an update_seq")
        self.header = DumpHeader.create(db_info, self.source.db_type, self.format_version)
        logger.info(f"Exporting {self.source.display_name} "
                    f"(update_seq={db_info.get('update_seq')}, batch_size={self.batch_size})")
        return self.header

    async def __aiter__(self) -> AsyncIterator[ChangeRecord]:
        if self.header is None:
            await self.open()

        batches = self.source.changes(self.batch_size)
        while True:
            try:
                batch = await self._run(next, batches, _END)
                if batch is _END:
                    break
                seq, docs = batch
                record = ChangeRecord.create(seq, docs)
            except CouchDumpError:
                raise
            except Exception as e:
                raise FeedError(f"Change feed of {self.source.display_name} ended abnormally: {e}") from e
            yield record
