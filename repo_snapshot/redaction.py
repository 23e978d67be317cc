import re

MASK = "****"

# Any run this long is treated as potential secret material.
SECRET_RUN = re.compile(r"[A-Za-z0-9/+=]{8,}")


def redact(text: str) -> str:
    """Mask every run of 8+ base64-ish characters in ``text``."""
    if not text:
        return ""
    return SECRET_RUN.sub(MASK, text)
