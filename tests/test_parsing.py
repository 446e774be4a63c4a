import pytest

from politecrawl.parsing import UrlTools


@pytest.mark.parametrize(
    "url,domain,path",
    [
        ("https://example.com/a/b?q=1", "example.com", "/a/b?q=1"),
        ("http://example.com:8080/x", "example.com", "/x"),
        ("https://example.com", "example.com", "/"),
        ("https://example.com:443", "example.com", "/"),
        ("example.com/a", "", "/"),
    ],
)
def test_split(url, domain, path):
    assert UrlTools.split(url) == (domain, path)


def test_read_worklist():
    lines = ["https://a.com/1\n", "\n", "  # comment\n", "  https://b.com/2  \n"]
    assert UrlTools.read_worklist(lines) == ["https://a.com/1", "https://b.com/2"]
