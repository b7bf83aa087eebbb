"""Identifier generation for invoices and filing sessions."""

import re
import time


def generate_id(prefix: str, label: str) -> str:
    """Build an id like 'invoice-1000a0001001-1735689600'.

    The label is lower-cased and reduced to dash separated alphanumerics; the
    suffix is the current unix time in seconds.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")
    return f"{prefix}-{slug}-{int(time.time())}"
