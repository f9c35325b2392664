"""
Records of the line-delimited dump format.

A dump is a header line followed by one change line per batch. Records keep
the exact text they were decoded from, so fields this package does not
interpret (revision trees, attachments, ...) are relayed untouched.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from couchdump.utils import parse_seq


class DumpRecord(BaseModel):
    model_config = ConfigDict(extra='allow')

    _line: str = PrivateAttr(default="")

    @classmethod
    def decode(cls, line: str):
        line = line.rstrip('\n')
        record = cls.model_validate(json.loads(line))
        record._line = line
        return record

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]):
        """Build a record from a freshly produced payload, fixing its encoding"""
        return cls.decode(json.dumps(payload, separators=(',', ':'), ensure_ascii=False))

    def encode(self) -> str:
        """The record's line, without the trailing newline"""
        if not self._line:
            # built through the constructor rather than decode
            self._line = json.dumps(self.model_dump(exclude_none=True), separators=(',', ':'),
                                    ensure_ascii=False)
        return self._line


class DumpHeader(DumpRecord):
    version: str
    db_type: str
    start_time: str
    db_info: Dict[str, Any] = Field(default_factory=dict)

    @property
    def total_seq(self) -> Optional[int]:
        return parse_seq(self.db_info.get('update_seq'))

    @classmethod
    def create(cls, db_info: Dict[str, Any], db_type: str, version: str) -> DumpHeader:
        return cls.from_payload({
            "version": version,
            "db_type": db_type,
            "start_time": datetime.now(timezone.utc).isoformat(),
            "db_info": db_info,
        })


class ChangeRecord(DumpRecord):
    seq: Any = None
    docs: Optional[List[Dict[str, Any]]] = None

    @property
    def seq_number(self) -> Optional[int]:
        return parse_seq(self.seq)

    @property
    def doc_count(self) -> int:
        return len(self.docs) if self.docs else 0

    @classmethod
    def create(cls, seq: Any, docs: List[Dict[str, Any]]) -> ChangeRecord:
        payload = {}
        if seq is not None:
            payload["seq"] = seq
        payload["docs"] = docs
        return cls.from_payload(payload)
