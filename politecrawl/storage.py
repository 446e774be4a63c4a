import json
import threading
from pathlib import Path
from typing import Dict

from .types import CrawlResult


COLUMNS = ("url", "domain", "http_status", "body", "content_type", "elapsed_ms", "crawled_at", "error")


def result_record(result: CrawlResult) -> Dict:
    record = dict(zip(COLUMNS, result.to_row()))
    record["crawled_at"] = result.crawled_at.isoformat()
    return record


class JsonlWriter:
    def __init__(self, output_path: str, append: bool = False) -> None:
        self.output_path = output_path
        self._lock = threading.Lock()
        out_path = Path(self.output_path)
        if out_path.parent:
            out_path.parent.mkdir(parents=True, exist_ok=True)
        mode = "a" if append else "w"
        self._fh = out_path.open(mode, encoding="utf-8")
        self.rows_written = 0

    def write(self, result: CrawlResult) -> None:
        line = json.dumps(result_record(result), ensure_ascii=False)
        with self._lock:
            self._fh.write(line + "\n")
            # rows must survive a forced exit
            self._fh.flush()
            self.rows_written += 1

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()

    def __enter__(self) -> "JsonlWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
