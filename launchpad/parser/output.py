"""Identifier and URL extraction from free-form provider CLI output.

Neither provider CLI offers a structured output mode for the commands we use,
so identifiers are recovered from their human-readable text. Every extractor
is a pure ``str -> str | None`` function: ``None`` means "not found" and must
be treated by callers as "proceed without it".
"""

from __future__ import annotations

import re
from typing import Optional

UUID_RE = re.compile(
    r"([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})", re.IGNORECASE
)
SERVICE_URL_RE = re.compile(r"/service/([a-f0-9-]{36})", re.IGNORECASE)
HTTPS_URL_RE = re.compile(r"(https://[^\s]+)", re.IGNORECASE)
NETLIFY_APP_RE = re.compile(r"(https://[a-z0-9-]+\.netlify\.app)", re.IGNORECASE)
VERSION_RE = re.compile(r"(\d+\.\d+\.\d+)")

# Ordered label preference when reading the URL out of `netlify deploy`.
NETLIFY_URL_LABELS: tuple[str, ...] = ("Website URL:", "Live URL:")


def _search(pattern: re.Pattern[str], text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = pattern.search(text)
    return match.group(1) if match else None


def extract_uuid(text: Optional[str]) -> Optional[str]:
    """Return the first 8-4-4-4-12 hex identifier in *text*."""
    return _search(UUID_RE, text)


def extract_service_id(text: Optional[str]) -> Optional[str]:
    """Return the service id embedded in a ``.../service/<id>`` URL fragment."""
    return _search(SERVICE_URL_RE, text)


def extract_labeled(
    text: Optional[str], label: str, token: str = r"[^\s]+"
) -> Optional[str]:
    """Return the token following a literal *label* and whitespace.

    Example::

        extract_labeled("Site ID:   abc-123", "Site ID:") -> "abc-123"
    """
    pattern = re.compile(re.escape(label) + r"\s+(" + token + r")", re.IGNORECASE)
    return _search(pattern, text)


def extract_site_id(text: Optional[str]) -> Optional[str]:
    """Return the id printed after ``Site ID:`` by ``netlify sites:create``."""
    return extract_labeled(text, "Site ID:", token=r"[a-f0-9-]+")


def extract_url(text: Optional[str]) -> Optional[str]:
    """Return the first ``https://`` URL in *text*."""
    return _search(HTTPS_URL_RE, text)


def extract_netlify_url(text: Optional[str]) -> Optional[str]:
    """Return the deployed site URL from ``netlify deploy`` output.

    Labeled lines win over bare matches: ``Website URL:`` first, then
    ``Live URL:``, then any ``https://<name>.netlify.app`` token.
    """
    for label in NETLIFY_URL_LABELS:
        url = extract_labeled(text, label, token=r"https://[^\s]+")
        if url:
            return url
    return _search(NETLIFY_APP_RE, text)


def extract_version(text: Optional[str]) -> Optional[str]:
    """Normalise ``--version`` output to ``vX.Y.Z``.

    Falls back to the first 20 characters of the trimmed output when no
    semantic version is present.
    """
    if not text or not text.strip():
        return None
    match = VERSION_RE.search(text)
    if match:
        return f"v{match.group(1)}"
    return text.strip()[:20]
