"""
URL input validators, framework-agnostic, pure functions.
"""

from __future__ import annotations

import validators as _validators


def validate_url(url: str) -> bool:
    """Return True if *url* is a well-formed http or https URL.

    Args:
        url: The URL string to validate.
    """
    if not url or not url.lower().startswith(("http://", "https://")):
        return False
    return bool(_validators.url(url))
