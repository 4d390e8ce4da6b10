"""Storage key construction.

Keys have the form ``<subject>/<epoch-ms>-<nonce>-<name>`` where every
component only contains ``[a-z0-9._-]``. The millisecond timestamp plus an
8-hex random nonce keeps keys unique for repeated uploads of one file name.
"""

import re
import secrets
import time
from typing import Optional

_DISALLOWED = re.compile(r"[^a-zA-Z0-9.-]")
_REPEATED_SEPARATORS = re.compile(r"[._-]{2,}")
_SEPARATORS = "._-"
FALLBACK_NAME = "file"


def _collapse(match: re.Match) -> str:
    # Keep the extension dot when a run contains one.
    run = match.group()
    return "." if "." in run else run[0]


def sanitize_filename(filename: str) -> str:
    """Reduce a user-supplied file name to a storage-safe token.

    Every character outside ``[a-zA-Z0-9.-]`` becomes ``_``. A run of
    separators (``.``, ``-``, ``_``) collapses to a single one, which is
    ``.`` if the run contained a dot. Leading and trailing separators are
    dropped and the result is lowercased. Returns ``"file"`` when nothing
    survives.
    """
    cleaned = _DISALLOWED.sub("_", filename or "")
    cleaned = _REPEATED_SEPARATORS.sub(_collapse, cleaned)
    cleaned = cleaned.strip(_SEPARATORS).lower()
    return cleaned or FALLBACK_NAME


def build_object_key(
    subject_id: str,
    filename: str,
    timestamp_ms: Optional[int] = None,
    nonce: Optional[str] = None,
) -> str:
    """Build a collision-resistant object key for an upload."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    if nonce is None:
        nonce = secrets.token_hex(4)
    return f"{sanitize_filename(subject_id)}/{timestamp_ms}-{nonce}-{sanitize_filename(filename)}"
