"""
e-doğrula: field normalization helpers shared by models, views and commands.

Everything here is best-effort: bad input yields ``None`` (field absent),
nothing raises.
"""

from __future__ import annotations

import json
import re
import unicodedata
from typing import Any, Iterable

import phonenumbers
from django.conf import settings

MAX_DOCS = 5
MAX_GALLERY = 8
PHONE_REGION = "TR"

INSTAGRAM_LINK_RE = re.compile(r"instagram\.com/(@?[\w.]+)", re.IGNORECASE)
SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

IG_URL_RE = re.compile(
    r"^(https?://)?(www\.)?(instagram\.com|instagr\.am)/([A-Za-z0-9._]{1,30})(/)?(\?.*)?$",
    re.IGNORECASE,
)
IG_USER_RE = re.compile(r"^@?([A-Za-z0-9._]{1,30})$")
PHONE_QUERY_RE = re.compile(r"^\+?[0-9 ()\-.]{10,20}$")
SITE_RE = re.compile(r"^(https?://)?([a-z0-9-]+\.)+[a-z]{2,}([:/?#].*)?$", re.IGNORECASE)

TR_CHAR_MAP = str.maketrans({
    "ş": "s", "Ş": "s",
    "ı": "i", "İ": "i",
    "ğ": "g", "Ğ": "g",
    "ü": "u", "Ü": "u",
    "ö": "o", "Ö": "o",
    "ç": "c", "Ç": "c",
})

TRUTHY = {"true", "1", "on", "yes", "evet"}


def clean(value: Any) -> str:
    """Trimmed string for str input, empty string for anything else."""
    if isinstance(value, str):
        return value.strip()
    return ""


def norm_email(value: Any) -> str:
    return clean(value).lower()


def to_https(value: Any) -> str | None:
    """Prefix scheme-less links with https://; http(s) links pass through."""
    s = clean(value)
    if not s:
        return None
    if SCHEME_RE.match(s):
        return s
    return "https://" + s.lstrip("/")


def normalize_url(value: Any) -> str:
    """Legacy website normalizer: empty stays empty, scheme added when missing."""
    return to_https(value) or ""


def normalize_instagram(username: Any = None, url: Any = None, legacy: Any = None) -> dict:
    """
    Reconcile an Instagram username and link.

    The username is taken from ``username`` or extracted from the link
    (``url`` first, then ``legacy``). When a username is known the link is
    rebuilt as ``https://instagram.com/<user>``.
    """
    user = clean(username)
    link = clean(url) or clean(legacy)

    if not user and link:
        match = INSTAGRAM_LINK_RE.search(link)
        if match:
            user = match.group(1)
        elif IG_USER_RE.match(link) and (link.startswith("@") or "." not in link):
            # bare handle in a link field, e.g. "@shop"
            user = link

    user = user.lstrip("@").lower()
    if user:
        link = f"https://instagram.com/{user}"
    elif link:
        link = to_https(link) or ""

    return {"username": user or None, "url": link or None}


def normalize_phone(raw: Any) -> str | None:
    """E.164 when the number parses as valid for TR, digits and '+' otherwise."""
    s = clean(raw)
    if not s:
        return None
    try:
        parsed = phonenumbers.parse(s, PHONE_REGION)
        if phonenumbers.is_valid_number(parsed):
            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    except phonenumbers.NumberParseException:
        pass
    only = re.sub(r"[^\d+]", "", s)
    return only or None


def phone_digits(raw: Any) -> str:
    """Digits only, with a leading TR country code folded to the national form."""
    digits = re.sub(r"\D", "", str(raw or ""))
    if digits.startswith("90") and len(digits) == 12:
        digits = "0" + digits[2:]
    elif len(digits) == 10 and not digits.startswith("0"):
        digits = "0" + digits
    return digits


def clean_path(path: Any) -> str:
    """Forward slashes, no leading slash, no doubled slashes."""
    s = str(path or "").replace("\\", "/")
    s = s.lstrip("/")
    return re.sub(r"/{2,}", "/", s)


def make_public_url(rel: Any) -> str | None:
    if not rel:
        return None
    rel = str(rel)
    if SCHEME_RE.match(rel):
        return rel
    base = (getattr(settings, "FILE_BASE_URL", "") or "").rstrip("/")
    cleaned = clean_path(rel)
    return f"{base}/{cleaned}" if base else f"/{cleaned}"


def _normalize_doc(item: Any) -> dict | None:
    if not item:
        return None
    if isinstance(item, str):
        path = clean_path(item)
        return {"path": path, "url": make_public_url(path)}
    if not isinstance(item, dict):
        return None

    doc = dict(item)
    if not doc.get("mimetype") and doc.get("mime"):
        doc["mimetype"] = doc["mime"]
    if not doc.get("originalname") and doc.get("name"):
        doc["originalname"] = doc["name"]
    doc.pop("mime", None)
    doc.pop("name", None)

    if doc.get("path"):
        doc["path"] = clean_path(doc["path"])
    if not doc.get("url") and doc.get("path"):
        doc["url"] = make_public_url(doc["path"])
    if doc.get("url"):
        doc["url"] = to_https(doc["url"]) if not str(doc["url"]).startswith("/") else doc["url"]

    doc["blur"] = bool(doc.get("blur"))
    if isinstance(doc.get("note"), str):
        doc["note"] = doc["note"].strip()
    if doc.get("size") is not None:
        try:
            size = float(doc["size"])
            doc["size"] = int(size) if size.is_integer() else size
        except (TypeError, ValueError):
            doc["size"] = 0
    return {k: v for k, v in doc.items() if v is not None}


def as_list(value: Any) -> list:
    """Lists pass through; a lone string or dict becomes one item; anything else is dropped."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, dict)) and value:
        return [value]
    return []


def cap_and_normalize_docs(items: Iterable[Any] | None, limit: int = MAX_DOCS) -> list[dict]:
    """Normalize document entries, drop duplicates by path/url, keep at most ``limit``."""
    seen = set()
    out = []
    for item in items or []:
        doc = _normalize_doc(item)
        if doc is None:
            continue
        key = doc.get("path") or doc.get("url") or json.dumps(doc, sort_keys=True, default=str)
        if key in seen:
            continue
        seen.add(key)
        out.append(doc)
    return out[:limit]


def norm_city(value: Any) -> str | None:
    return clean(value)[:64] or None


def norm_district(value: Any) -> str | None:
    return clean(value)[:64] or None


def derive_address(district: Any, city: Any) -> str:
    return ", ".join(part for part in (clean(district), clean(city)) if part)


def slugify_tr(value: Any) -> str:
    """'Sapanca Kule Bungalov' -> 'sapanca-kule-bungalov' with Turkish letters folded."""
    s = str(value or "").translate(TR_CHAR_MAP).lower()
    s = unicodedata.normalize("NFD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


def norm_handle(value: Any) -> str:
    return clean(str(value or "")).lstrip("@").lower()


def uniq_strings(values: Iterable[Any] | None) -> list[str]:
    out = []
    for v in values or []:
        s = clean(str(v)) if v is not None else ""
        if s and s not in out:
            out.append(s)
    return out


def extract_gallery(value: Any) -> list[str]:
    """Flatten strings or {url|href|path|src|location} objects into unique URL strings."""
    if not value:
        return []
    items = value if isinstance(value, (list, tuple)) else [value]
    out = []
    for v in items:
        if isinstance(v, str):
            out.append(v)
        elif isinstance(v, dict):
            for key in ("url", "href", "path", "src", "location"):
                if v.get(key):
                    out.append(v[key])
                    break
    return uniq_strings(out)


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value if value is not None else "").strip().lower() in TRUTHY


parse_consent = parse_bool


def classify_query(raw: Any, hinted_type: Any = "") -> dict:
    """
    Guess what a search box string is: Instagram link, Instagram username,
    phone number, website or free text. ``hinted_type`` is tried first.
    """
    q = clean(raw)
    if not q:
        return {"ok": False, "reason": "empty"}

    def ig_url():
        username = IG_URL_RE.match(q).group(4)
        return {"ok": True, "type": "ig_url", "value": f"https://instagram.com/{username}", "username": username}

    def ig_username():
        username = q.lstrip("@")
        return {"ok": True, "type": "ig_username", "value": username, "username": username}

    def phone():
        return {"ok": True, "type": "phone", "value": normalize_phone(q)}

    def website():
        url = q if SCHEME_RE.match(q) else f"https://{q}"
        return {"ok": True, "type": "website", "value": url}

    checks = [
        ("ig_url", IG_URL_RE, ig_url),
        ("ig_username", IG_USER_RE, ig_username),
        ("website", SITE_RE, website),
        ("phone", PHONE_QUERY_RE, phone),
    ]
    hint = clean(str(hinted_type or "")).lower()
    for name, pattern, build in checks:
        if hint == name and pattern.match(q):
            return build()
    for name, pattern, build in checks:
        if pattern.match(q):
            return build()
    return {"ok": True, "type": "text", "value": q}
