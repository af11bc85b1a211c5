from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "dclid",
        "msclkid",
        "yclid",
        "igshid",
        "mc_cid",
        "mc_eid",
        "_hsenc",
        "_hsmi",
    }
)
TRACKING_PREFIXES = ("utm_",)

RESTRICTED_PREFIXES: tuple[tuple[str, str], ...] = (
    ("chrome://", "Cannot convert Chrome system pages"),
    ("chrome-extension://", "Cannot convert extension pages"),
    ("edge://", "Cannot convert Edge system pages"),
    ("about:", "Cannot convert browser internal pages"),
    ("file://", "Cannot convert local files"),
    ("view-source:", "Cannot convert source view pages"),
    ("data:", "Cannot convert data URLs"),
    ("javascript:", "Cannot convert JavaScript URLs"),
    ("moz-extension://", "Cannot convert extension pages"),
)

_NEW_TAB_PAGES = {"chrome://newtab/", "edge://newtab/"}
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def extract_hostname(url: str) -> str | None:
    """Return the lowercase hostname of *url*, or ``None`` when it has none."""

    if not url:
        return None
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return None
    return hostname or None


def registrable_domain(url: str) -> str | None:
    hostname = extract_hostname(url)
    if hostname is None:
        return None
    return _WWW_RE.sub("", hostname)


def is_tracking_param(name: str) -> bool:
    lowered = name.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def strip_tracking_params(url: str) -> str:
    """Drop tracking query parameters, keeping every other pair verbatim and in order.

    Raises ``ValueError`` when the URL cannot be split.
    """

    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = parts.query.split("&")
    kept = [pair for pair in pairs if not is_tracking_param(pair.split("=", 1)[0])]
    if len(kept) == len(pairs):
        return url
    return urlunsplit(parts._replace(query="&".join(kept)))


def is_restricted_url(url: str) -> tuple[bool, str | None]:
    if not url:
        return True, "No URL provided"
    if url == "about:blank":
        return True, "Please navigate to a web page first"
    if url in _NEW_TAB_PAGES:
        return True, "Cannot convert new tab page"
    for prefix, reason in RESTRICTED_PREFIXES:
        if url.startswith(prefix):
            return True, reason
    try:
        parts = urlsplit(url)
    except ValueError:
        return True, "Invalid URL format"
    if not parts.scheme or not parts.netloc:
        return True, "Invalid URL format"
    if not parts.scheme.lower().startswith("http"):
        return True, "Only HTTP and HTTPS pages can be converted"
    return False, None


__all__ = [
    "TRACKING_PARAMS",
    "extract_hostname",
    "is_restricted_url",
    "is_tracking_param",
    "registrable_domain",
    "strip_tracking_params",
]
