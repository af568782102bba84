"""Secret masking for display."""

from typing import Optional

from ..constants import Defaults


def mask_secret(secret: Optional[str]) -> Optional[str]:
    """
    Mask a secret for display.

    Secrets of four characters or fewer become a fixed mask token so that
    nothing of them is revealed. Longer secrets keep their first two and last
    two characters and have every character in between replaced with ``*``.

    Args:
        secret: Raw secret value

    Returns:
        Masked secret, or None when there is no secret
    """
    if not secret:
        return None
    if len(secret) <= 4:
        return Defaults.MASK_TOKEN
    return f"{secret[:2]}{'*' * (len(secret) - 4)}{secret[-2:]}"
