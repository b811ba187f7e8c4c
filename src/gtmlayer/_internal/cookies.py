"""Cookie header parsing for the session middleware and test client."""


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers. The first
    occurrence of a name wins.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep and key.strip():
            cookies.setdefault(key.strip(), value.strip())
    return cookies
