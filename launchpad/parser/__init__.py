"""Launchpad output parsing.

Pure pattern matchers that recover identifiers and URLs from provider CLI
text. See ``launchpad.parser.output``.
"""

from .output import (
    extract_labeled,
    extract_netlify_url,
    extract_service_id,
    extract_site_id,
    extract_url,
    extract_uuid,
    extract_version,
)

__all__ = [
    "extract_labeled",
    "extract_netlify_url",
    "extract_service_id",
    "extract_site_id",
    "extract_url",
    "extract_uuid",
    "extract_version",
]
