"""Spelling hints for a mistyped offset policy"""

import difflib
from typing import Optional, Sequence

from metdownscale.core.constants import OFFSET_POLICIES


def _normalize(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def closest_offset_policy(
    value: str, policies: Sequence[str] = OFFSET_POLICIES, cutoff: float = 0.59
) -> Optional[str]:
    """Find the offset policy a mistyped value most likely names

    Case, hyphens and spaces are ignored. A unique prefix such as ``"anch"``
    is accepted before falling back to difflib.

    Parameters
    ----------
    value : str
        Policy name as given in the run options.
    policies : sequence of str, optional
        Known policy names.
    cutoff : float, optional
        See difflib.get_close_matches.

    Returns
    -------
    str or None
        The intended policy, or None if nothing is close.

    """
    by_key = {_normalize(p): p for p in policies}
    wanted = _normalize(value)
    if wanted in by_key:
        return by_key[wanted]

    prefixed = [p for key, p in by_key.items() if wanted and key.startswith(wanted)]
    if len(prefixed) == 1:
        return prefixed[0]

    guess = difflib.get_close_matches(wanted, list(by_key), n=1, cutoff=cutoff)
    return by_key[guess[0]] if guess else None


def offset_policy_hint(value) -> str:
    """Suffix for the invalid-policy warning, empty when nothing is close."""
    if not isinstance(value, str):
        return ""
    closest = closest_offset_policy(value)
    return f" Did you mean {closest!r}?" if closest else ""
