"""Contact-card content: build vCard 3.0 text from a form and parse it back."""

from dataclasses import dataclass, fields

VCARD_SIGNATURE = "BEGIN:VCARD"


@dataclass(frozen=True)
class ContactCard:
    name: str = ""
    organization: str = ""
    title: str = ""
    phone: str = ""
    email: str = ""
    url: str = ""
    address: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name).strip() for f in fields(self))

    def to_vcard(self) -> str:
        """Serialise the non-empty fields as a vCard 3.0 block (CRLF line ends)."""
        lines = [VCARD_SIGNATURE, "VERSION:3.0"]
        if self.name:
            parts = self.name.strip().split(" ")
            family = _escape(parts[-1]) if len(parts) > 1 else ""
            given = _escape(" ".join(parts[:-1]) if len(parts) > 1 else parts[0])
            lines.append(f"N:{family};{given};;;")
            lines.append(f"FN:{_escape(self.name)}")
        if self.organization:
            lines.append(f"ORG:{_escape(self.organization)}")
        if self.title:
            lines.append(f"TITLE:{_escape(self.title)}")
        if self.phone:
            lines.append(f"TEL;TYPE=CELL:{_escape(self.phone)}")
        if self.email:
            lines.append(f"EMAIL:{_escape(self.email)}")
        if self.url:
            lines.append(f"URL:{_escape(self.url)}")
        if self.address:
            # Whole address goes in the street component
            lines.append(f"ADR;TYPE=WORK:;;{_escape(self.address)};;;;")
        lines.append("END:VCARD")
        return "\r\n".join(lines)


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def _unescape(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append("\n" if nxt in ("n", "N") else nxt)
        else:
            out.append(ch)
    return "".join(out)


def _split_components(value: str) -> list[str]:
    """Split on unescaped semicolons, leaving escapes in place."""
    parts, current, escaped = [], [], False
    for ch in value:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            current.append(ch)
            escaped = True
        elif ch == ";":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def is_vcard(content: str) -> bool:
    return content.lstrip().upper().startswith(VCARD_SIGNATURE)


def _unfold(text: str) -> list[str]:
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").split("\n"):
        if raw.startswith((" ", "\t")) and lines:
            lines[-1] += raw[1:]
        elif raw:
            lines.append(raw)
    return lines


def parse_vcard(content: str) -> ContactCard:
    """Read the fields this studio writes back out of vCard text.

    Unknown properties are ignored. ``FN`` wins over ``N`` for the name.

    Raises:
        ValueError: If the content does not start with the vCard signature.
    """
    if not is_vcard(content):
        raise ValueError("Content is not a vCard.")

    values: dict[str, str] = {}
    structured_name = ""
    for line in _unfold(content):
        key, sep, value = line.partition(":")
        if not sep:
            continue
        prop = key.split(";", 1)[0].upper()
        if prop == "FN":
            values["name"] = _unescape(value)
        elif prop == "N":
            components = [_unescape(c) for c in _split_components(value)]
            family = components[0] if components else ""
            given = components[1] if len(components) > 1 else ""
            structured_name = " ".join(p for p in (given, family) if p)
        elif prop == "ORG":
            values["organization"] = _unescape(_split_components(value)[0])
        elif prop == "TITLE":
            values["title"] = _unescape(value)
        elif prop == "TEL":
            values.setdefault("phone", _unescape(value))
        elif prop == "EMAIL":
            values.setdefault("email", _unescape(value))
        elif prop == "URL":
            values["url"] = _unescape(value)
        elif prop == "ADR":
            components = [_unescape(c) for c in _split_components(value)]
            values["address"] = ", ".join(c for c in components if c)

    if "name" not in values and structured_name:
        values["name"] = structured_name
    return ContactCard(**values)
