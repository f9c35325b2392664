import io

from couchdump.core.progress import ProgressReporter
from couchdump.core.records import ChangeRecord, DumpHeader


def header_with(update_seq):
    db_info = {"db_name": "mydb"}
    if update_seq is not None:
        db_info["update_seq"] = update_seq
    return DumpHeader.create(db_info, "http", "1.2.6")


def test_progress_follows_seq():
    reporter = ProgressReporter(file=io.StringIO())
    reporter.start(header_with("200-abc"))
    reporter.update(ChangeRecord.create("50-abc", []))
    assert reporter.position == 50
    reporter.update(ChangeRecord.create(150, []))
    assert reporter.position == 150
    reporter.close()


def test_progress_never_goes_backwards():
    reporter = ProgressReporter(file=io.StringIO())
    reporter.start(header_with(100))
    reporter.update(ChangeRecord.create(80, []))
    reporter.update(ChangeRecord.create(40, []))
    assert reporter.position == 80
    reporter.update(ChangeRecord.create(500, []))
    assert reporter.position == 100


def test_records_without_seq_do_not_advance():
    reporter = ProgressReporter(file=io.StringIO())
    reporter.start(header_with(100))
    reporter.update(ChangeRecord.decode('{"docs":[{"_id":"a"}]}'))
    assert reporter.position == 0


def test_empty_database_completes_immediately():
    for update_seq in (0, None):
        out = io.StringIO()
        reporter = ProgressReporter(file=out)
        reporter.start(header_with(update_seq))
        reporter.update(ChangeRecord.create(0, []))
        assert reporter.bar.n == reporter.bar.total
        reporter.close()
        assert "100%" in out.getvalue()
