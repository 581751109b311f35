"""
Masking helpers so credentials and personal data stay out of logs.

Usage:
    logger.info("User registered", extra={'email': mask_email(email)})
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")


def mask_email(email: Optional[str]) -> str:
    """
    Mask an email address, showing only the first 2 chars and the domain.

    Examples:
        >>> mask_email("alice@example.com")
        'al***@example.com'
        >>> mask_email("a@example.com")
        'a***@example.com'
    """
    if not email:
        return "***"
    match = EMAIL_PATTERN.match(email)
    if match:
        local, domain = match.groups()
        if len(local) <= 2:
            masked_local = local[0] + "***"
        else:
            masked_local = local[:2] + "***"
        return f"{masked_local}@{domain}"
    return "***"


def mask_api_key(api_key: Optional[str], visible_chars: int = 4) -> str:
    """Mask API key showing only first N characters.

    Examples:
        >>> mask_api_key("abc123xyz789")
        'abc1********'
        >>> mask_api_key(None)
        '****'
    """
    if not api_key or len(api_key) <= visible_chars:
        return "****"
    return api_key[:visible_chars] + "*" * 8
