from __future__ import annotations

import math
from typing import Any, Mapping

# Filter values (RFC 4515 subset) and DN components (RFC 4514 subset).
_FILTER_CHARS = ("\\", "*", "(", ")", "\x00")
_DN_CHARS = ("\\", ",", "=", "+", "<", ">", ";", '"', "#")


def _hex_table(chars: tuple[str, ...]) -> dict[str, str]:
    return {ch: "\\" + format(ord(ch), "02x") for ch in chars}


_FILTER_TABLE = _hex_table(_FILTER_CHARS)
_DN_TABLE = _hex_table(_DN_CHARS)


def _scalar_to_str(s: Any) -> str:
    if isinstance(s, bool):
        return "1" if s else ""
    if isinstance(s, str):
        return s
    if isinstance(s, (int, float)):
        return str(s)
    return ""


def escape_value(s: Any, is_dn: bool = False) -> str:
    """Escape an untrusted value for an LDAP filter or a DN component.

    Every special character becomes a backslash followed by its two-digit
    lowercase hex code, e.g. ``*`` -> ``\\2a``. Non-scalar input yields "".
    """
    table = _DN_TABLE if is_dn else _FILTER_TABLE
    return "".join(table.get(ch, ch) for ch in _scalar_to_str(s))


def escape_filter_value(value: Any) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    return escape_value(value, is_dn=False)


def escape_dn_value(value: Any) -> str:
    return escape_value(value, is_dn=True)


def users_base_dn(domain: str) -> str:
    """CN=Users[,DC=<domain>],DC=local, the default AD users container."""
    dn = "CN=Users"
    domain = (domain or "").strip()
    if domain:
        dn += ",DC=" + escape_dn_value(domain)
    return dn + ",DC=local"


def clean_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_port(value: Any) -> int | None:
    """Numeric check for port values.

    - int / float / numeric string -> int (fraction truncated).
    - bool, empty string, garbage, NaN/inf -> None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    s = value.strip()
    # int()/float() accept "1_000"
    if not s or "_" in s:
        return None
    try:
        return int(s)
    except ValueError:
        pass
    try:
        f = float(s)
    except ValueError:
        return None
    # float() also accepts "nan" / "infinity"
    if not math.isfinite(f):
        return None
    return int(f)


def first_values(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    """Flatten an ldap3 attribute mapping to {lowercased name: first value}."""
    out: dict[str, Any] = {}
    for name, value in (attributes or {}).items():
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            value = value[0]
        out[str(name).lower()] = value
    return out
