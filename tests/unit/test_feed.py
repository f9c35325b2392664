import asyncio
from typing import Iterator

import pytest

from couchdump.core.feed import ChangeFeed
from couchdump.core.sources import Source
from couchdump.core.sources.http_source import HttpSource
from couchdump.core.sources.local_source import LocalSource
from couchdump.exceptions import FeedError, SourceUnavailable


class BrokenSource(Source):
    db_type = "test"

    def probe(self):
        return

    def info(self):
        return {"update_seq": 3}

    def changes(self, batch_size) -> Iterator:
        yield 1, [{"_id": "a"}]
        raise ConnectionResetError("connection reset by peer")


async def collect(feed):
    return [record async for record in feed]


def test_feed_header_and_records(couch_service, couch_url):
    feed = ChangeFeed(HttpSource(couch_url, http_session=couch_service), batch_size=100)
    header = asyncio.run(feed.open())
    assert header.total_seq == 250
    assert header.db_type == "http"

    records = asyncio.run(collect(feed))
    assert [r.doc_count for r in records] == [100, 100, 50]
    assert [r.seq_number for r in records] == [100, 200, 250]


def test_batch_size_does_not_change_documents(local_db):
    path = str(local_db(57))

    def docs_for(batch_size):
        feed = ChangeFeed(LocalSource(path), batch_size=batch_size)
        records = asyncio.run(collect(feed))
        return [doc for record in records for doc in record.docs]

    assert docs_for(1) == docs_for(10) == docs_for(100)


def test_feed_opens_lazily(local_db):
    feed = ChangeFeed(LocalSource(str(local_db(5))), batch_size=2)
    records = asyncio.run(collect(feed))
    assert feed.header is not None
    assert feed.header.total_seq == 5
    assert len(records) == 3


def test_feed_missing_source(tmp_path):
    feed = ChangeFeed(LocalSource(str(tmp_path / "missing.sqlite")))
    with pytest.raises(SourceUnavailable):
        asyncio.run(feed.open())


@pytest.mark.asyncio
async def test_feed_error_mid_stream():
    feed = ChangeFeed(BrokenSource("broken"), batch_size=1)
    seen = []
    with pytest.raises(FeedError) as exc_info:
        async for record in feed:
            seen.append(record)
    assert len(seen) == 1
    assert "connection reset" in str(exc_info.value)


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        ChangeFeed(LocalSource("x"), batch_size=0)
