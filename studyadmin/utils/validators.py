import re

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def clean_str(val: str | None, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]

def is_valid_email(val: str | None) -> bool:
    if not val:
        return False
    return bool(_EMAIL_RE.match(val))

def is_truthy(val) -> bool:
    """Form checkbox/switch values: 'true', 'on', '1' (any case) count as set."""
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("true", "on", "1", "yes")

def parse_tags(val: str | None) -> list[str] | None:
    """
    'education, tech ,,partner' -> ['education', 'tech', 'partner'].
    Returns None when nothing is left.
    """
    if not val:
        return None
    tags = [t.strip() for t in val.split(",")]
    tags = [t for t in tags if t]
    return tags or None
