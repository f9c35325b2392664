from typing import Any, Dict, Iterator, List, Tuple

from couchdump.exceptions import SourceUnavailable

Batch = Tuple[Any, List[Dict[str, Any]]]


class Source:
    """A database that can be exported.

    Subclasses provide a reachability probe, the database info (which must
    carry `update_seq`) and an ordered change feed of (seq, docs) batches.
    """

    db_type = "unknown"

    def __init__(self, identifier: str):
        self.identifier = identifier

    @property
    def display_name(self) -> str:
        return self.identifier

    def probe(self):
        """Raise SourceUnavailable if the database cannot be exported"""
        raise NotImplementedError()

    def exists(self) -> bool:
        try:
            self.probe()
        except SourceUnavailable:
            return False
        return True

    def info(self) -> Dict[str, Any]:
        raise NotImplementedError()

    def changes(self, batch_size: int) -> Iterator[Batch]:
        raise NotImplementedError()

    def close(self):
        ...

    def __str__(self):
        return f"{self.__class__.__name__}({self.display_name})"
