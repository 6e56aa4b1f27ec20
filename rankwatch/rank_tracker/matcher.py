"""Locate a tracked domain inside an ordered SERP result list."""

import re
from collections.abc import Mapping, Sequence
from typing import Any, Optional

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

# Characters that may legally follow a host name in a URL.
_HOST_BOUNDARY = ("/", ":", "?", "#")

URL_FIELDS = ("link", "url")


def normalize_url(url: str) -> str:
    """Reduce a URL or bare domain to a comparable form.

    Examples:
        >>> normalize_url("https://www.Example.com/")
        'example.com'
        >>> normalize_url("example.com/page/")
        'example.com/page'
    """
    text = _SCHEME_RE.sub("", url.strip())
    text = text.lower().removeprefix("www.")
    return text.rstrip("/")


def _result_url(entry: Any) -> Optional[str]:
    if not isinstance(entry, Mapping):
        return None
    for field in URL_FIELDS:
        value = entry.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def _matches(candidate: str, target: str, strict: bool) -> bool:
    if not candidate.startswith(target):
        return False
    if not strict:
        return True
    rest = candidate[len(target):]
    return rest == "" or rest.startswith(_HOST_BOUNDARY)


def match_position(
    results: Any,
    target_domain: str,
    strict: bool = False,
) -> Optional[int]:
    """Return the 1-based position of the first result on ``target_domain``.

    A result matches when its normalized URL starts with the normalized
    target, so ``example.com/page`` matches ``example.com``.  With
    ``strict=True`` the match must also end on a host boundary, which stops
    ``example.com.evil.com`` from matching ``example.com``.

    Entries without a URL are skipped but still occupy their position.
    Returns ``None`` for an empty or non-sequence ``results`` or when
    nothing matches.
    """
    if isinstance(results, (str, bytes)) or not isinstance(results, Sequence):
        return None
    target = normalize_url(target_domain)
    if not target:
        return None

    for index, entry in enumerate(results, 1):
        url = _result_url(entry)
        if url is None:
            continue
        if _matches(normalize_url(url), target, strict):
            return index
    return None
