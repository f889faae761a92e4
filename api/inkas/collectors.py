import re
from typing import NamedTuple, Optional
from urllib.parse import unquote


class CollectorIdentity(NamedTuple):
    id: Optional[str]
    label: Optional[str]


# Upstream mixes up cp1251/utf-8, so some names arrive as mojibake.
# New broken sequences go here, the lookup itself does not change.
KNOWN_COLLECTORS = (
    ("Р†РіРѕСЂ", CollectorIdentity("Kirk", "Kirk")),
    ('Р"РјРёС‚СЂРѕ', CollectorIdentity("Anna", "Anna")),
    ("Ігор", CollectorIdentity("Ігор", "Ігор")),
)

_NAME_DASH_RE = re.compile(r"(.+?)\s*-\s*")


def _decode(raw: str) -> str:
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def resolve_collector(description: Optional[str]) -> CollectorIdentity:
    """Collector id/label from the free-text `descr` of an entry."""
    if not description:
        return CollectorIdentity(None, None)

    decoded = _decode(str(description))

    for broken, identity in KNOWN_COLLECTORS:
        if broken in decoded:
            return identity

    # "Name - "
    m = _NAME_DASH_RE.fullmatch(decoded)
    if m:
        return CollectorIdentity(None, m.group(1).strip())

    label = decoded.strip()
    return CollectorIdentity(None, label or None)
