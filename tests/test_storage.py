import json
from datetime import datetime, timezone

from politecrawl.storage import COLUMNS, JsonlWriter
from politecrawl.types import BLOCKED_STATUS, CrawlResult, Outcome


def result(url, outcome=Outcome.FETCHED, status=200, error=None):
    return CrawlResult(
        url=url,
        domain="a.com",
        outcome=outcome,
        status=status,
        body="<p>hi</p>" if outcome is Outcome.FETCHED else None,
        content_type="text/html" if outcome is Outcome.FETCHED else None,
        elapsed_ms=12,
        crawled_at=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
        error=error,
    )


def test_jsonl_writer_rows(tmp_path):
    out = tmp_path / "nested" / "out.jsonl"
    with JsonlWriter(str(out)) as w:
        w.write(result("https://a.com/x"))
        w.write(result("https://a.com/y", Outcome.BLOCKED, BLOCKED_STATUS, "robots.txt disallow"))
    assert w.rows_written == 2

    lines = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert list(lines[0].keys()) == list(COLUMNS)
    assert lines[0]["http_status"] == 200
    assert lines[0]["crawled_at"] == "2024-05-06T07:08:09+00:00"
    assert lines[1]["http_status"] == -1
    assert lines[1]["body"] is None
    assert lines[1]["error"] == "robots.txt disallow"


def test_jsonl_writer_append(tmp_path):
    out = tmp_path / "out.jsonl"
    with JsonlWriter(str(out)) as w:
        w.write(result("https://a.com/1"))
    with JsonlWriter(str(out), append=True) as w:
        w.write(result("https://a.com/2"))
    assert len(out.read_text(encoding="utf-8").splitlines()) == 2
