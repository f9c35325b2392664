import sys
from typing import Optional, TextIO

from tqdm import tqdm

from couchdump.core.records import ChangeRecord, DumpHeader


class ProgressObserver:
    """Watches the record stream without affecting it"""

    def start(self, header: DumpHeader):
        ...

    def update(self, record: ChangeRecord):
        ...

    def close(self):
        ...


class ProgressReporter(ProgressObserver):
    """Progress bar driven by seq / update_seq of the header"""

    def __init__(self, file: Optional[TextIO] = None, desc: str = "Dumping", **tqdm_kwargs):
        self.file = file if file is not None else sys.stderr
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self.bar: Optional[tqdm] = None
        self.total_seq = 0

    @property
    def position(self) -> int:
        return self.bar.n if self.bar is not None else 0

    def start(self, header: DumpHeader):
        self.total_seq = header.total_seq or 0
        self.bar = tqdm(
            total=max(self.total_seq, 1),
            desc=self.desc,
            file=self.file,
            ncols=80,
            **self.tqdm_kwargs,
        )
        if not self.total_seq:
            # nothing to export
            self.bar.update(1)

    def update(self, record: ChangeRecord):
        seq = record.seq_number
        if self.bar is None or seq is None or not self.total_seq:
            return
        seq = min(seq, self.total_seq)
        if seq > self.bar.n:
            self.bar.update(seq - self.bar.n)

    def close(self):
        if self.bar is not None:
            self.bar.close()
