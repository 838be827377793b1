from __future__ import annotations

import re
from typing import Iterable

LABEL_MARKER = "📍"
COPY_AFFORDANCE = "Sao chép"
WARD_FIELD_LABEL = "Phường/Xã:"
WARD_KEYWORDS: tuple[str, ...] = ("Phường", "Xã", "Thị trấn")
MIN_SCAN_LENGTH = 10

WARD_ADDRESS_PATTERN = re.compile(
    r"^(?:" + "|".join(re.escape(keyword) for keyword in WARD_KEYWORDS) + r")\s+.+,\s*.+"
)


def ward_name(full_address: str) -> str:
    return full_address.split(",", 1)[0].strip()


def _is_label_noise(text: str) -> bool:
    return LABEL_MARKER in text or COPY_AFFORDANCE in text


def match_structural(texts: Iterable[str]) -> str | None:
    """Texts are the paragraphs beside the "new address" label node."""
    for text in texts:
        cleaned = (text or "").strip()
        if cleaned and not _is_label_noise(cleaned):
            return cleaned
    return None


def match_pattern(texts: Iterable[str]) -> str | None:
    for text in texts:
        cleaned = (text or "").strip()
        if WARD_ADDRESS_PATTERN.match(cleaned):
            return cleaned
    return None


def match_scan(texts: Iterable[str]) -> str | None:
    for text in texts:
        cleaned = (text or "").strip()
        if not any(keyword in cleaned for keyword in WARD_KEYWORDS):
            continue
        if WARD_FIELD_LABEL in cleaned or _is_label_noise(cleaned):
            continue
        if "," not in cleaned or len(cleaned) <= MIN_SCAN_LENGTH:
            continue
        return cleaned
    return None
