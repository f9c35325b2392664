import asyncio
import logging
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

import pluggy

from couchdump import hookspecs
from couchdump.core import sources
from couchdump.core.factory import DumpFactory
from couchdump.core.feed import ChangeFeed
from couchdump.core.progress import ProgressObserver
from couchdump.core.records import ChangeRecord, DumpHeader
from couchdump.core.writer import DumpWriter
from couchdump.exceptions import WriteError

logger = logging.getLogger('couchdump')
stderr_log_handler = logging.StreamHandler(sys.stderr)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
stderr_log_handler.setFormatter(formatter)
logger.addHandler(stderr_log_handler)

logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_plugin_manager() -> pluggy.PluginManager:
    pm = pluggy.PluginManager("couchdump")
    pm.add_hookspecs(hookspecs)
    pm.load_setuptools_entrypoints("couchdump")
    pm.register(sources)
    return pm


@dataclass
class ExportSummary:
    files: List[str] = field(default_factory=list)
    records: int = 0
    docs: int = 0


class CouchDump:
    def __init__(self, factory: DumpFactory):
        self._factory = factory
        self._observer: Optional[ProgressObserver] = None

    @property
    def config(self):
        return self._factory.config

    def export(self) -> ExportSummary:
        return asyncio.run(self.export_async())

    async def export_async(self) -> ExportSummary:
        pm = get_plugin_manager()
        source = self._factory.build_source(pm.hook)
        try:
            feed = self._factory.build_feed(source)
            header = await feed.open()
            with ExitStack() as stack:
                stream = self._open_output(stack)
                writer = self._factory.build_writer(header, stream)
                await self._pump(feed, header, writer)
        finally:
            source.close()

        return ExportSummary(files=list(writer.files_written),
                             records=writer.records_written,
                             docs=writer.docs_written)

    def _open_output(self, stack: ExitStack) -> Optional[TextIO]:
        if self.config.split:
            return None
        if not self.config.output_file:
            return sys.stdout
        try:
            return stack.enter_context(open(self.config.output_file, "w", encoding="utf-8"))
        except OSError as e:
            raise WriteError(f"Could not create {self.config.output_file}: {e}") from e

    async def _pump(self, feed: ChangeFeed, header: DumpHeader, writer: DumpWriter):
        self._observer = self._factory.build_progress()
        self._notify("start", header)
        try:
            async for record in feed:
                self._notify("update", record)
                await writer.write(record)
        except BaseException:
            await writer.abort()
            raise
        else:
            await writer.finish()
        finally:
            self._notify("close")
            self._observer = None

    def _notify(self, event: str, *args):
        """Forward an event to the progress observer; its failures never reach the export"""
        if self._observer is None:
            return
        try:
            getattr(self._observer, event)(*args)
        except Exception as e:
            logger.warning(f"Progress display failed ({e}); continuing without it")
            self._observer = None


__all__ = [
    "ChangeFeed",
    "ChangeRecord",
    "CouchDump",
    "DumpFactory",
    "DumpHeader",
    "ExportSummary",
    "get_plugin_manager",
    "logger",
]
