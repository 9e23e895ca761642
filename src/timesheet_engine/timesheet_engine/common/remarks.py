"""Localized remark helpers.

Backend remarks are lists of ``{"language": ..., "text": ...}`` entries; the
domain keeps them as tuples of ``RemarkText``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class RemarkText:
    language: str
    text: str


def get_remark_text(remark: Sequence[RemarkText], language: str, preferred: Iterable[str] = ()) -> str:
    """Text for ``language``, else the first preferred language present, else the first entry."""
    if not remark:
        return ""
    by_lang = {r.language: r.text for r in remark}
    if by_lang.get(language):
        return by_lang[language]
    for lang in preferred:
        if by_lang.get(lang):
            return by_lang[lang]
    return remark[0].text or ""


def set_remark_text(remark: Sequence[RemarkText], language: str, text: Optional[str]) -> tuple[RemarkText, ...]:
    """Replace (or add) the entry for ``language``; an empty text removes it."""
    out = [r for r in remark if r.language != language]
    if text:
        out.append(RemarkText(language=language, text=text))
    return tuple(out)


def remark_from_backend(raw) -> tuple[RemarkText, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (RemarkText(language="", text=raw),)
    return tuple(
        RemarkText(language=str(r.get("language") or ""), text=str(r.get("text") or ""))
        for r in raw
        if isinstance(r, dict)
    )


def remark_to_backend(remark: Sequence[RemarkText]) -> list[dict]:
    return [{"language": r.language, "text": r.text} for r in remark]
