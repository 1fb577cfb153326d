"""Candidate preparation: URL normalization, validation and favicon lookup."""

from typing import Optional
from urllib.parse import urlencode, urlparse

from common.constants import FAVICON_SERVICE_URL, FAVICON_SIZE
from common.types import CandidateFields


class InvalidCandidateError(ValueError):
    """Raised when user input cannot become a bookmark."""
    pass


def normalize_url(raw: str) -> str:
    """Trim the input and default to https:// when no scheme is given."""
    url = raw.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def favicon_for(url: str) -> str:
    """
    Build a favicon service URL for the host of `url`.

    Returns:
        Favicon URL, or an empty string if the URL has no host
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return ""
    if not hostname:
        return ""
    query = urlencode({"domain": hostname, "sz": FAVICON_SIZE})
    return f"{FAVICON_SERVICE_URL}?{query}"


def prepare_candidate(url: str, title: str, favicon: Optional[str] = None) -> CandidateFields:
    """
    Turn raw form input into CandidateFields.

    Raises:
        InvalidCandidateError: With a user-facing message
    """
    if not url or not url.strip():
        raise InvalidCandidateError("Please enter a URL.")

    final_url = normalize_url(url)
    if not is_valid_url(final_url):
        raise InvalidCandidateError("Please enter a valid URL.")

    trimmed_title = (title or "").strip()
    if not trimmed_title:
        raise InvalidCandidateError("Please enter a title.")

    return CandidateFields(
        title=trimmed_title,
        url=final_url,
        favicon=favicon if favicon is not None else (favicon_for(final_url) or None),
    )
