from typing import Optional, TextIO

from couchdump.config import Config
from couchdump.core.feed import ChangeFeed
from couchdump.core.progress import ProgressObserver, ProgressReporter
from couchdump.core.records import DumpHeader
from couchdump.core.sources import Source, get_source
from couchdump.core.writer import DumpWriter, SplitWriter, StreamWriter


class DumpFactory:

    def __init__(self, config: Config, http_session=None, progress_file: Optional[TextIO] = None):
        self.config = config
        self.http_session = http_session
        self.progress_file = progress_file

    def build_source(self, hook) -> Source:
        return get_source(hook, self.config, http_session=self.http_session)

    def build_feed(self, source: Source) -> ChangeFeed:
        return ChangeFeed(
            source,
            batch_size=self.config.effective_batch_size(),
            format_version=self.config.format_version,
        )

    def build_writer(self, header: DumpHeader, stream: Optional[TextIO] = None) -> DumpWriter:
        if self.config.split:
            return SplitWriter(header, self.config.output_file, self.config.split)
        return StreamWriter(header, stream, name=self.config.output_file or "<stdout>")

    def build_progress(self) -> Optional[ProgressObserver]:
        # stdout dumps stay undecorated
        if not self.config.progress or not self.config.output_file:
            return None
        return ProgressReporter(file=self.progress_file)
