import html
from datetime import datetime, timezone
from typing import Optional
import bleach


def sanitize_input(value: Optional[str]) -> str:
    """Sanitize a user-supplied string before it is stored and displayed.

    - Removes NULL bytes
    - Decodes entities so encoded markup such as ``&lt;script&gt;`` is seen as tags
    - Strips HTML tags using bleach.clean(..., strip=True)
    - Decodes the entities bleach adds, so ``&`` stays ``&`` across repeated saves
    - Trims whitespace
    """
    if value is None:
        return ""
    val = html.unescape(value.replace("\x00", ""))
    val = bleach.clean(val, tags=[], strip=True)
    return html.unescape(val).strip()


def utcnow() -> datetime:
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)
