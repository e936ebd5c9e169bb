from __future__ import annotations

import re
from typing import Any

_PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def format_filter(template: str, *values: str | None) -> str:
    """Substitute positional ``{N}`` placeholders with escaped values.

    Placeholders without a matching value and any other braces are left as they are.
    """

    def repl(m: re.Match) -> str:
        idx = int(m.group(1))
        if idx >= len(values):
            return m.group(0)
        return escape_ldap_filter_value(values[idx] or "")

    return _PLACEHOLDER_RE.sub(repl, template)


def dn_first_component_value(dn: str) -> str:
    """Return first RDN value from a DN (e.g. CN=admins,OU=groups,... -> admins)."""
    s = (dn or "").strip()
    if not s:
        return ""

    # Extract first RDN (handle escaped commas)
    first: list[str] = []
    esc = False
    for ch in s:
        if esc:
            first.append("\\" + ch)
            esc = False
            continue
        if ch == "\\":
            esc = True
            continue
        if ch == ",":
            break
        first.append(ch)
    rdn = "".join(first).strip()

    if "=" in rdn:
        _, val = rdn.split("=", 1)
        val = val.strip()
    else:
        val = rdn

    # Unescape common DN escapes
    val = (
        val.replace("\\,", ",")
        .replace("\\+", "+")
        .replace("\\=", "=")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )
    return val.strip()


def attr_values(raw: Any) -> list[str]:
    """Normalize an ldap3 attribute value (scalar, list, bytes) to a list of str."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raw = [raw]
    out: list[str] = []
    for v in raw:
        if v is None:
            continue
        if isinstance(v, (bytes, bytearray)):
            v = bytes(v).decode("utf-8", errors="replace")
        out.append(str(v))
    return out
