"""Slug helper used for anchors, file names, and flow identifiers."""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slug(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated slug.

    Every run of characters outside ``[a-z0-9]`` collapses to a single
    hyphen and leading/trailing hyphens are stripped, so the result is
    stable when applied twice.

    Args:
        text: Arbitrary text.

    Returns:
        The slug, e.g. ``"hello-world"`` for ``"Hello, World!"``.
    """
    return _NON_ALNUM.sub("-", text.lower()).strip("-")
