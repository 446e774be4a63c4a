from typing import Iterable, List, Tuple


class UrlTools:
    """Plain string splitting, no normalization: the domain is what sits between ``://`` and the next ``/``."""

    @staticmethod
    def extract_domain(url: str) -> str:
        proto_end = url.find("://")
        if proto_end == -1:
            return ""
        start = proto_end + 3
        end = url.find("/", start)
        authority = url[start:] if end == -1 else url[start:end]
        return authority.split(":", 1)[0]

    @staticmethod
    def extract_path(url: str) -> str:
        proto_end = url.find("://")
        if proto_end == -1:
            return "/"
        start = url.find("/", proto_end + 3)
        if start == -1:
            return "/"
        return url[start:]

    @staticmethod
    def split(url: str) -> Tuple[str, str]:
        return UrlTools.extract_domain(url), UrlTools.extract_path(url)

    @staticmethod
    def read_worklist(lines: Iterable[str]) -> List[str]:
        """URLs from a text listing, one per line; blank lines and ``#`` comments skipped."""
        urls: List[str] = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            urls.append(line)
        return urls
