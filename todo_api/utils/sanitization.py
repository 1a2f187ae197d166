import re

TAG_RE = re.compile(r'<[^>]*>')


def sanitize_string(v):
    if not isinstance(v, str):
        return v
    # Strip HTML tags, then surrounding whitespace
    return TAG_RE.sub('', v).strip()


def sanitize_strings(values):
    if not isinstance(values, list):
        return values
    return [sanitize_string(v) for v in values]
