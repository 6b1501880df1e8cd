import html
import re

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")


def decode_html_entities(text: str) -> str:
    """
    Decode HTML entities (&amp;, &#39;, &frac12; ...) and trim.
    Double-encoded input ("&amp;amp;") is decoded once more.
    """
    if not text:
        return ""
    decoded = html.unescape(text)
    if "&" in decoded and decoded != text:
        decoded = html.unescape(decoded)
    return decoded.strip()


def clean_text(text: str) -> str:
    """Decode entities, drop stray tags and collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", decode_html_entities(text))
    return _WS_RE.sub(" ", text).strip()
