"""URL normalization and cache keys.

Two URLs that point at the same recipe page should produce the same cache
key even when one of them carries tracking parameters, a ``www.`` host, a
different query-parameter order or a trailing slash.
"""
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

TRACKING_PARAMS = frozenset({
    # UTM parameters
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    # Social/ad click IDs
    "fbclid",
    "gclid",
    "gclsrc",
    "dclid",
    "msclkid",
    "twclid",
    # Referral params
    "ref",
    "source",
    "referrer",
    "origin",
    # Print/share views on recipe sites
    "printview",
    "print",
    "shared",
})

DEFAULT_PORTS = {"http": 80, "https": 443}

KNOWN_RECIPE_SITES = {
    "allrecipes.com": "allrecipes",
    "seriouseats.com": "seriouseats",
    "bonappetit.com": "bonappetit",
    "epicurious.com": "epicurious",
    "foodnetwork.com": "foodnetwork",
    "food52.com": "food52",
    "smittenkitchen.com": "smittenkitchen",
    "budgetbytes.com": "budgetbytes",
    "cookinglight.com": "cookinglight",
    "delish.com": "delish",
    "eatingwell.com": "eatingwell",
    "foodandwine.com": "foodandwine",
    "myrecipes.com": "myrecipes",
    "simplyrecipes.com": "simplyrecipes",
    "tasteofhome.com": "tasteofhome",
    "thekitchn.com": "thekitchn",
    "cooking.nytimes.com": "nytcooking",
}


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def _normalize_netloc(scheme: str, netloc: str) -> str:
    userinfo, at, hostport = netloc.rpartition("@")
    host, colon, port = hostport.partition(":")
    if host.startswith("["):
        # IPv6 literal: the port (if any) follows the closing bracket
        host, _, rest = hostport.partition("]")
        host += "]"
        colon, port = (":", rest[1:]) if rest.startswith(":") else ("", "")
    host = _strip_www(host.lower())
    if port and port.isdigit() and int(port) == DEFAULT_PORTS.get(scheme):
        colon, port = "", ""
    return f"{userinfo}{at}{host}{colon}{port}"


def normalize_url(url: str) -> str:
    """Canonicalize a URL for cache lookups.

    - Removes tracking parameters
    - Removes the www prefix
    - Sorts the remaining query params by key
    - Removes a single trailing slash (the root path keeps its slash)
    - Lowercases scheme and host only; path and query keep their case

    Input that does not parse as an absolute URL is returned unchanged.
    """
    try:
        parsed = urlsplit(url.strip())
        scheme = parsed.scheme.lower()
        if not scheme or not parsed.netloc:
            return url
        netloc = _normalize_netloc(scheme, parsed.netloc)
    except ValueError:
        return url

    params = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    # sorted() is stable, so repeated keys keep their relative order
    params = sorted(params, key=lambda kv: kv[0])
    query = urlencode(params)

    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return urlunsplit((scheme, netloc, path, query, parsed.fragment))


def _utf16_code_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def _rolling_hash(code_units) -> int:
    """hash = hash * 31 + unit, wrapped to a signed 32-bit integer."""
    h = 0
    for unit in code_units:
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


def simple_hash(text: str) -> str:
    """16-char hex fingerprint: forward hash + reverse hash.

    Not collision resistant. The constants are pinned so keys stay
    compatible with records written by earlier clients.
    """
    units = _utf16_code_units(text)
    forward = format(abs(_rolling_hash(units)), "x")
    backward = format(abs(_rolling_hash(reversed(units))), "x")
    return (forward + backward).rjust(16, "0")[:16]


def hash_url(url: str) -> str:
    """Cache key for a URL (hash of its normalized form)."""
    return simple_hash(normalize_url(url))


def is_valid_url(url: str) -> bool:
    """Only absolute http/https URLs with a host are accepted."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlsplit(url.strip())
        return parsed.scheme.lower() in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def get_domain(url: str) -> str:
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return _strip_www(host.lower())


def get_known_site(url: str) -> str | None:
    return KNOWN_RECIPE_SITES.get(get_domain(url))
