from __future__ import annotations

import shutil

from captionburn.exceptions import EncoderUnavailable


def require_binary(binary: str) -> str:
    resolved = shutil.which(binary)
    if resolved is None:
        raise EncoderUnavailable(
            f"Missing required dependency '{binary}'. Install it and try again."
        )
    return resolved
