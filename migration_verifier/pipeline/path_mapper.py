"""Map a source URL onto the same path under the target domain."""

from urllib.parse import SplitResult, urlsplit


def _split(url: str) -> SplitResult | None:
    """Parse an absolute URL; None when it has no scheme, no host or a bad port."""
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            return None
        parts.port  # noqa: B018 - raises ValueError on an invalid port
    except (ValueError, AttributeError):
        return None
    return parts


def is_valid_url(url: str) -> bool:
    return _split(url) is not None


def extract_path(source_url: str) -> str:
    """Return path + query + fragment of ``source_url``.

    A URL that cannot be parsed maps to "/" instead of raising, so it is
    checked against the target domain's root.
    """
    parts = _split(source_url)
    if parts is None:
        return "/"

    path = parts.path or "/"
    if parts.query:
        path += f"?{parts.query}"
    if parts.fragment:
        path += f"#{parts.fragment}"
    return path


def construct_target_url(path: str, domain: str) -> str:
    """Join ``path`` onto ``domain`` after dropping one trailing slash from it."""
    if domain.endswith("/"):
        domain = domain[:-1]
    return domain + path


def map_url(source_url: str, domain: str) -> str:
    return construct_target_url(extract_path(source_url), domain)
