"""Database URL handling: extracting the TLS root certificate and sizing the pool."""

from __future__ import annotations

from urllib.parse import parse_qsl, quote, urlsplit

DEFAULT_MAX_POOL_SIZE = 150

_QUERY_SAFE = "=&/:?@!$'()*+,;~-._%"


def parse_and_clean_db_url(url: str) -> tuple[str, str | None]:
    """Split the ``sslrootcert`` parameter out of a database URL.

    Returns the URL with every other query parameter rewritten as ``key=value&``
    and the certificate path, or ``None`` when the URL names none.
    """
    parts = urlsplit(url)
    if not parts.scheme:
        raise ValueError(f"Could not parse database url: {url!r}")

    cert_path = None
    query = ""
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "sslrootcert":
            cert_path = value
        else:
            query += f"{key}={value}&"

    after_scheme = url.split(":", 1)[1]
    if parts.netloc or after_scheme.startswith("//"):
        prefix = f"{parts.scheme}://{parts.netloc}"
    else:
        prefix = f"{parts.scheme}:"
    cleaned = f"{prefix}{parts.path}?{quote(query, safe=_QUERY_SAFE)}"
    if parts.fragment:
        cleaned += f"#{parts.fragment}"
    return cleaned, cert_path


def pool_size(max_pool_size: int | None) -> int:
    """The number of connections a pool may hold, defaulting when none is given."""
    return DEFAULT_MAX_POOL_SIZE if max_pool_size is None else max_pool_size