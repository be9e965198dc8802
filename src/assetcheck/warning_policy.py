"""Warning policy controls for assetcheck diagnostics.

Recoverable problems found while loading or analyzing an asset are reported
as coded ``AssetCheckWarning``s:

- ``W01``: a primitive uses a mode other than TRIANGLES and is skipped.
- ``W02``: a primitive has no ``TEXCOORD_0``; UV checks do not apply to it.
- ``W03``: a primitive contains zero-area triangles.
- ``W04``: an accessor is sparse; its sparse substitution is ignored.

A ``WarningPolicy`` can suppress codes or promote them to ``AssetCheckError``.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from assetcheck.errors import AssetCheckError

CODE_DESCRIPTIONS: dict[str, str] = {
    "W01": "non-triangle primitive skipped",
    "W02": "primitive has no TEXCOORD_0",
    "W03": "degenerate triangles",
    "W04": "sparse accessor not substituted",
}

KNOWN_CODES: frozenset[str] = frozenset(CODE_DESCRIPTIONS)


class AssetCheckWarning(UserWarning):
    """Warning with a machine-readable code."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(f"[{code}] {message}")


@dataclass(frozen=True)
class WarningPolicy:
    """Controls how individual warning codes are handled."""

    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()


def emit_warning(code: str, message: str, *, policy: WarningPolicy | None = None) -> None:
    """Emit a warning, respecting the active policy.

    - If code is in ``policy.suppress``, the warning is silently dropped.
    - If code is in ``policy.warn_as_error``, an ``AssetCheckError`` is raised.
    - Otherwise an ``AssetCheckWarning`` is issued via ``warnings.warn``.
    """
    if policy is not None:
        if code in policy.suppress:
            return
        if code in policy.warn_as_error:
            raise AssetCheckError(f"[{code}] {message}")

    warnings.warn(AssetCheckWarning(code, message), stacklevel=2)


def parse_code_list(raw: str) -> frozenset[str]:
    """Parse a comma-separated string of W-codes and validate them.

    Raises ``ValueError`` for unknown codes.
    """
    codes: set[str] = set()
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        if token not in KNOWN_CODES:
            known = ", ".join(f"{c} ({d})" for c, d in sorted(CODE_DESCRIPTIONS.items()))
            raise ValueError(f"Unknown warning code: {token!r} (known: {known})")
        codes.add(token)
    return frozenset(codes)
