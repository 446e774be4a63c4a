#!/usr/bin/env python3
import argparse
import logging
import sys
from typing import List, Optional

from politecrawl.config import ConfigError, CrawlConfig, DEFAULT_USER_AGENT
from politecrawl.engine import Crawler
from politecrawl.parsing import UrlTools
from politecrawl.prometheus_exporter import PrometheusExporter
from politecrawl.storage import JsonlWriter


EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Polite, robots.txt-aware crawler for a fixed list of URLs.")
    parser.add_argument("urls", nargs="*", help="URLs to crawl, in order.")
    parser.add_argument("--url-file", default=None, help="File with one URL per line ('#' comments allowed).")
    parser.add_argument(
        "--user-agent",
        required=True,
        help=f"User-Agent header to send and to match robots.txt groups (e.g. {DEFAULT_USER_AGENT!r}).",
    )
    parser.add_argument("--default-delay", type=float, default=1.0, help="Crawl delay when robots.txt declares none.")
    parser.add_argument("--min-delay", type=float, default=0.0, help="Lower bound for any crawl delay.")
    parser.add_argument("--max-delay", type=float, default=60.0, help="Upper bound for any crawl delay.")
    parser.add_argument("--timeout", type=float, default=30.0, help="HTTP read timeout in seconds.")
    parser.add_argument("--ignore-robots", action="store_true", help="Ignore robots.txt (not recommended).")
    parser.add_argument("--no-log-skipped", action="store_true", help="Do not emit rows for URLs blocked by robots.txt.")
    parser.add_argument("--no-compress", action="store_true", help="Do not request gzip/deflate responses.")
    parser.add_argument("--out", dest="output_path", default="crawl.jsonl", help="Path to JSONL output file.")
    parser.add_argument("--append", action="store_true", help="Append to the output file instead of truncating it.")
    parser.add_argument("--metrics-interval", type=float, default=0.0, help="Seconds between perf logs (0 to disable).")
    parser.add_argument("--prometheus-port", type=int, default=0, help="Serve Prometheus metrics on this port (0 to disable).")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    return parser.parse_args(argv)


def collect_urls(args: argparse.Namespace) -> List[str]:
    urls = list(args.urls)
    if args.url_file:
        with open(args.url_file, encoding="utf-8") as fh:
            urls.extend(UrlTools.read_worklist(fh))
    return urls


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_level = logging.WARNING
    if args.verbose == 1:
        log_level = logging.INFO
    elif args.verbose >= 2:
        log_level = logging.DEBUG
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(threadName)s %(message)s",
    )

    try:
        config = CrawlConfig(
            urls=collect_urls(args),
            user_agent=args.user_agent,
            default_crawl_delay=args.default_delay,
            min_crawl_delay=args.min_delay,
            max_crawl_delay=args.max_delay,
            timeout_seconds=args.timeout,
            respect_robots_txt=not args.ignore_robots,
            log_skipped=not args.no_log_skipped,
            compress=not args.no_compress,
            metrics_interval=max(0.0, args.metrics_interval),
        )
        crawler = Crawler(config)
    except (ConfigError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    exporter = None
    if args.prometheus_port > 0:
        exporter = PrometheusExporter(crawler.metrics, port=args.prometheus_port)
        exporter.start()
        logging.info("Prometheus metrics available at http://0.0.0.0:%d/metrics", args.prometheus_port)

    try:
        with JsonlWriter(args.output_path, append=args.append) as writer:
            crawler.run(sink=writer)
    finally:
        crawler.close()
        if exporter:
            exporter.stop()

    return EXIT_CANCELLED if crawler.token.cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
