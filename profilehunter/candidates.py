"""
Candidate username generation.

Profile handles are usually some variant of the email local part, so a
handful of cheap rewrites of it covers most real handles.
"""

import re
from typing import List

from .schema import split_email

MAX_CANDIDATES = 5
NON_ALPHA = re.compile(r"[^a-zA-Z]")


def generate_usernames(email: str) -> List[str]:
    """
    Derive up to five plausible usernames from the email's local part.

    Order: verbatim, dots removed, non-letters removed, first+second token,
    first token + initial of second token. Duplicates and empty strings are
    dropped, first occurrence wins. The two token rules are skipped when the
    local part has no second dot-separated token.

    Raises:
        InvalidEmailError: if the email has no local or domain part
    """
    local, _ = split_email(email)
    tokens = local.split(".")

    patterns = [
        local,
        local.replace(".", ""),
        NON_ALPHA.sub("", local),
    ]
    if len(tokens) >= 2 and tokens[1]:
        patterns.append(tokens[0] + tokens[1])
        patterns.append(tokens[0] + tokens[1][0])

    seen = set()
    result = []
    for p in patterns:
        if p and p not in seen:
            seen.add(p)
            result.append(p)
    return result[:MAX_CANDIDATES]
