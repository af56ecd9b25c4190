from __future__ import annotations

import re

from bs4 import BeautifulSoup

_WS_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def html_to_text(html_fragment: str) -> str:
    """Convert an HTML snippet (e.g., RSS description) to plain text.

    The fragment is read as HTML exactly once: tags are stripped and their
    place taken by a space, while entity-escaped markup (``&lt;p&gt;``) is
    rendered as the visible text it stands for rather than removed.
    """

    if not html_fragment:
        return ""
    soup = BeautifulSoup(html_fragment, "lxml")
    return normalize_text(soup.get_text(" ", strip=True))


def clean_description(text: str | None) -> str | None:
    if not text:
        return None
    return html_to_text(text) or None


def first_image_src(html: str | None) -> str | None:
    if not html or "<img" not in html.lower():
        return None
    soup = BeautifulSoup(html, "lxml")
    img = soup.find("img", src=True)
    if img is None:
        return None
    src = str(img.get("src") or "").strip()
    return src or None


def extract_og_image(html: str) -> str | None:
    """Best-effort preview image lookup on an article page."""

    soup = BeautifulSoup(html or "", "lxml")

    for sel in (
        'meta[property="og:image"]',
        'meta[name="twitter:image"]',
        'meta[property="twitter:image"]',
    ):
        tag = soup.select_one(sel)
        if tag and tag.get("content"):
            url = str(tag.get("content") or "").strip()
            if url:
                return url

    return None
