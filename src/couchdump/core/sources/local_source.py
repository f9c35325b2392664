import base64
import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from couchdump.core.sources._base import Batch, Source
from couchdump.exceptions import FeedError, SourceUnavailable

logger = logging.getLogger('couchdump')

DOC_STORE = '"document-store"'
BY_SEQ_STORE = '"by-sequence"'
ATTACH_STORE = '"attach-store"'


def unescape_binary_string(body: str) -> str:
    """Undo the escaping PouchDB applies to NUL, 0x01 and 0x02 in stored binary strings"""
    return body.replace('\u0001\u0003', '\u0002').replace('\u0001\u0002', '\u0001') \
        .replace('\u0001\u0001', '\u0000')


def winning_revisions(rev_tree: List[Dict[str, Any]], rev: str) -> Optional[Dict[str, Any]]:
    """The `_revisions` of rev, walking PouchDB's rev_tree from its root to that leaf.

    Each tree is {"pos": n, "ids": [hash, opts, [children...]]}.
    """
    try:
        start = int(rev.split('-', 1)[0])
        target = rev.split('-', 1)[1]
    except (IndexError, ValueError):
        return None
    for tree in rev_tree:
        stack = [(tree["pos"], tree["ids"], [])]
        while stack:
            pos, node, path = stack.pop()
            path = path + [node[0]]
            if pos == start and node[0] == target:
                return {"start": start, "ids": list(reversed(path))}
            for child in node[2]:
                stack.append((pos + 1, child, path))
    return None


class LocalSource(Source):
    """PouchDB database stored on disk in SQLite (node-websql adapter layout).

    Each document is exported once, at its winning revision, in the order of
    its latest change.
    """

    db_type = "sqlite"

    def __init__(self, identifier: str):
        super().__init__(identifier)
        self.path = Path(identifier).expanduser()
        self._conn = None

    def probe(self):
        if not os.path.exists(self.path):
            raise SourceUnavailable(f"{self.identifier} not found. does the file/directory exist?")
        if not self.path.is_file():
            raise SourceUnavailable(
                f"{self.identifier} is not a supported local database. Only PouchDB SQLite files "
                f"(websql / node-websql adapter) can be exported; LevelDB directories are not supported")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                # batches are read from an executor thread
                self._conn = sqlite3.connect(f"{self.path.resolve().as_uri()}?mode=ro", uri=True,
                                             check_same_thread=False)
            except sqlite3.Error as e:
                raise SourceUnavailable(f"{self.identifier}: {e}") from e
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def info(self) -> Dict[str, Any]:
        try:
            update_seq = self.conn.execute(f"SELECT MAX(seq) AS seq FROM {BY_SEQ_STORE}").fetchone()["seq"]
            doc_count = self.conn.execute(
                f"SELECT COUNT(*) AS n FROM {DOC_STORE} d "
                f"JOIN {BY_SEQ_STORE} s ON s.seq = d.winningseq "
                f"WHERE s.deleted = 0"
            ).fetchone()["n"]
        except sqlite3.Error as e:
            raise FeedError(f"Could not read {self.identifier}: {e}") from e
        return {
            "db_name": self.path.name,
            "doc_count": int(doc_count or 0),
            "update_seq": int(update_seq or 0),
            "adapter": "websql",
        }

    def _read_attachment(self, digest: str) -> str:
        row = self.conn.execute(
            f"SELECT body, escaped FROM {ATTACH_STORE} WHERE digest = ?", (digest,)
        ).fetchone()
        if row is None:
            raise FeedError(f"Attachment {digest} is missing from {self.identifier}")
        body = row["body"]
        if body is None:
            body = b""
        if isinstance(body, str):
            if row["escaped"]:
                body = unescape_binary_string(body)
            # websql stores attachments as binary strings
            body = body.encode("latin-1")
        return base64.b64encode(body).decode("ascii")

    def _inline_attachments(self, doc: Dict[str, Any]):
        for attachment in doc.get("_attachments", {}).values():
            if not attachment.get("stub"):
                continue
            data = self._read_attachment(attachment["digest"])
            attachment.pop("stub")
            attachment["data"] = data

    def _to_doc(self, row: sqlite3.Row) -> Dict[str, Any]:
        doc = json.loads(row["json"]) if row["json"] else {}
        doc["_id"] = row["doc_id"]
        doc["_rev"] = row["rev"]
        if row["deleted"]:
            doc["_deleted"] = True
        self._inline_attachments(doc)
        metadata = json.loads(row["metadata"]) if row["metadata"] else {}
        revisions = winning_revisions(metadata.get("rev_tree", []), row["rev"])
        if revisions is not None:
            doc["_revisions"] = revisions
        return doc

    def changes(self, batch_size: int) -> Iterator[Batch]:
        since = 0
        while True:
            try:
                rows = self.conn.execute(
                    f"SELECT d.max_seq, d.json AS metadata, s.doc_id, s.rev, s.deleted, s.json "
                    f"FROM {DOC_STORE} d JOIN {BY_SEQ_STORE} s ON s.seq = d.winningseq "
                    f"WHERE d.max_seq > ? ORDER BY d.max_seq LIMIT ?",
                    (since, batch_size),
                ).fetchall()
            except sqlite3.Error as e:
                raise FeedError(f"Could not read changes from {self.identifier}: {e}") from e
            if not rows:
                return

            since = rows[-1]["max_seq"]
            try:
                docs = [self._to_doc(row) for row in rows]
            except sqlite3.Error as e:
                raise FeedError(f"Could not read attachments from {self.identifier}: {e}") from e
            yield since, docs

            if len(rows) < batch_size:
                return

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None
