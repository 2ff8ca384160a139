"""Reversible, filesystem-safe encoding of package names."""

from __future__ import annotations

from urllib.parse import quote, unquote

CHANGELOG_SUFFIX = ".md"


def encode_package_name(name: str) -> str:
    """Percent-encode every character outside ``[A-Za-z0-9_.~-]``.

    ``@scope/pkg`` becomes ``%40scope%2Fpkg``. A literal ``%`` is itself
    encoded, so :func:`decode_package_name` always recovers the input.
    """
    if not name:
        raise ValueError("Package name must not be empty")
    return quote(name, safe="")


def decode_package_name(token: str) -> str:
    return unquote(token, errors="strict")


def changelog_filename(name: str) -> str:
    return encode_package_name(name) + CHANGELOG_SUFFIX


def package_name_from_filename(filename: str) -> str:
    if not filename.endswith(CHANGELOG_SUFFIX):
        raise ValueError(f"Not a changelog document: {filename}")
    return decode_package_name(filename[: -len(CHANGELOG_SUFFIX)])
