from __future__ import annotations

import re
from html.entities import name2codepoint

# &name; / &#NNN; / &#xHHHH; matched in a single pass so entities never interact
_ENTITY_RE = re.compile(r"&(?:#(\d+)|#[xX]([0-9a-fA-F]+)|([A-Za-z][A-Za-z0-9]*));")

_NAMED: dict[str, str] = {name: chr(cp) for name, cp in name2codepoint.items()}
_NAMED["apos"] = "'"


def _codepoint(value: int) -> str | None:
    if value <= 0 or value > 0x10FFFF:
        return None
    try:
        return chr(value)
    except ValueError:
        return None


def _replace(m: re.Match[str]) -> str:
    dec, hexa, name = m.group(1), m.group(2), m.group(3)
    if dec is not None:
        ch = _codepoint(int(dec))
    elif hexa is not None:
        ch = _codepoint(int(hexa, 16))
    else:
        ch = _NAMED.get(name)
    return m.group(0) if ch is None else ch


def decode_entities(text: str) -> str:
    """Replace HTML/XML character references with the characters they name.

    Unknown references such as ``&unknown;`` are left as they are.
    """

    if not text or "&" not in text:
        return text or ""
    return _ENTITY_RE.sub(_replace, text)
