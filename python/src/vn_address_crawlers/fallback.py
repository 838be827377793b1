from __future__ import annotations

# Prefecture labels the site lists under a different division type.
# Ordered; the first matching prefix is rewritten, once.
PREFECTURE_FALLBACK_PREFIXES: tuple[tuple[str, str], ...] = (
    ("Huyện ", "Thị xã "),
    ("Thành phố ", "Thị xã "),
    ("Quận ", "Thị xã "),
)


def fallback_label(
    label: str,
    table: tuple[tuple[str, str], ...] = PREFECTURE_FALLBACK_PREFIXES,
) -> str | None:
    """Return the substituted label, or None when no rewrite changes it."""
    for match_prefix, replacement_prefix in table:
        if label.startswith(match_prefix):
            rewritten = replacement_prefix + label[len(match_prefix):]
            return rewritten if rewritten != label else None
    return None
