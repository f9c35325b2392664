import json
import sqlite3
from dataclasses import dataclass
from typing import Dict, List

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "cli: command line interface tests")


@dataclass
class MockResponse:
    text: str
    status_code: int = 200

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class MockCouchService:
    """In-memory stand-in for a CouchDB database behind requests.Session"""

    def __init__(self, url: str, docs: List[Dict], status_code: int = 200):
        self.url = url.rstrip('/')
        self.docs = docs
        self.status_code = status_code
        self.headers = {}
        self.calls = []
        self.closed = False
        self.fail_changes_after = None

    @property
    def update_seq(self):
        return len(self.docs)

    def get(self, url, params: dict = None, timeout=None):
        self.calls.append(("GET", url, params))
        if url == self.url:
            if self.status_code != 200:
                return MockResponse(json.dumps({"error": "unauthorized"}), status_code=self.status_code)
            return MockResponse(json.dumps({
                "db_name": self.url.rsplit('/', 1)[-1],
                "doc_count": len(self.docs),
                "update_seq": f"{self.update_seq}-g1AAAAabc",
            }))
        if url == f"{self.url}/_changes":
            since = int(str(params["since"]).split('-')[0])
            limit = int(params["limit"])
            if self.fail_changes_after is not None and since >= self.fail_changes_after:
                return MockResponse(json.dumps({"error": "internal"}), status_code=500)
            results = [
                {"seq": f"{n}-g1AAAAabc", "id": doc["_id"], "changes": [{"rev": doc["_rev"]}]}
                for n, doc in enumerate(self.docs, start=1)
                if n > since
            ][:limit]
            last_seq = results[-1]["seq"] if results else f"{since}-g1AAAAabc"
            return MockResponse(json.dumps({"results": results, "last_seq": last_seq}))
        return MockResponse("{}", status_code=404)

    def post(self, url, params: dict = None, json: dict = None, timeout=None):
        self.calls.append(("POST", url, params))
        if url != f"{self.url}/_bulk_get":
            return MockResponse("{}", status_code=404)
        by_id = {doc["_id"]: doc for doc in self.docs}
        results = [
            {"id": wanted["id"], "docs": [{"ok": by_id[wanted["id"]]}]}
            for wanted in json["docs"]
        ]
        return MockResponse(_dumps({"results": results}))

    def close(self):
        self.closed = True


def _dumps(obj):
    return json.dumps(obj)


def make_docs(count: int) -> List[Dict]:
    return [
        {
            "_id": f"doc-{n:04d}",
            "_rev": f"1-{n:032x}",
            "_revisions": {"start": 1, "ids": [f"{n:032x}"]},
            "value": n,
        }
        for n in range(count)
    ]


@pytest.fixture
def couch_url():
    return "http://localhost:5984/mydb"


@pytest.fixture
def couch_service(couch_url):
    return MockCouchService(couch_url, make_docs(250))


def rev_tree_of(revisions: Dict) -> List[Dict]:
    """Single-branch PouchDB rev_tree for a doc's _revisions"""
    ids = revisions["ids"]
    node = [ids[0], {"status": "available"}, []]
    for rev_hash in ids[1:]:
        node = [rev_hash, {"status": "missing"}, [node]]
    return [{"pos": revisions["start"] - len(ids) + 1, "ids": node}]


def create_pouchdb_sqlite(path, docs: List[Dict], deleted_ids=(), attachments: Dict[str, bytes] = None):
    """Write docs into a SQLite file laid out like PouchDB's websql adapter.

    Revision histories go into the document-store rev_tree, attachment bodies
    into attach-store keyed by digest.
    """
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE "document-store" (id UNIQUE, json, winningseq, max_seq INTEGER UNIQUE);
        CREATE TABLE "by-sequence" (seq INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
                                    json, deleted TINYINT(1), doc_id, rev);
        CREATE TABLE "attach-store" (digest UNIQUE, escaped TINYINT(1), body BLOB);
        CREATE TABLE "metadata-store" (dbid, db_version INTEGER);
        """
    )
    for digest, data in (attachments or {}).items():
        conn.execute('INSERT INTO "attach-store" (digest, escaped, body) VALUES (?, ?, ?)',
                     (digest, 0, data))
    for doc in docs:
        body = {k: v for k, v in doc.items() if k not in ("_id", "_rev", "_revisions")}
        deleted = 1 if doc["_id"] in deleted_ids else 0
        cursor = conn.execute(
            'INSERT INTO "by-sequence" (json, deleted, doc_id, rev) VALUES (?, ?, ?, ?)',
            (json.dumps(body), deleted, doc["_id"], doc["_rev"]),
        )
        seq = cursor.lastrowid
        rev_tree = rev_tree_of(doc["_revisions"]) if "_revisions" in doc else []
        conn.execute(
            'INSERT INTO "document-store" (id, json, winningseq, max_seq) VALUES (?, ?, ?, ?)',
            (doc["_id"], json.dumps({"id": doc["_id"], "rev_tree": rev_tree}), seq, seq),
        )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def local_db(tmp_path):
    def _(count: int, deleted_ids=()):
        return create_pouchdb_sqlite(tmp_path / "mydb.sqlite", make_docs(count), deleted_ids)
    return _


ATTACHMENT_DIGEST = "md5-sNr6i9Mg8sCoKqqyeu+m0g=="


@pytest.fixture
def local_db_with_history(tmp_path):
    """One doc carrying an attachment, one doc at its second revision"""
    docs = [
        {
            "_id": "with-attachment",
            "_rev": "1-aaaa",
            "_revisions": {"start": 1, "ids": ["aaaa"]},
            "_attachments": {
                "greeting.txt": {
                    "content_type": "text/plain",
                    "digest": ATTACHMENT_DIGEST,
                    "length": 2,
                    "revpos": 1,
                    "stub": True,
                },
            },
        },
        {
            "_id": "edited",
            "_rev": "2-bbbb",
            "_revisions": {"start": 2, "ids": ["bbbb", "cccc"]},
            "value": "second",
        },
    ]
    return create_pouchdb_sqlite(tmp_path / "history.sqlite", docs,
                                 attachments={ATTACHMENT_DIGEST: b"hi"})
