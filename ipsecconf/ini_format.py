"""Text codec between the ipsec.conf / ipsec.secrets file formats and RawRecord trees."""
import re
from typing import List

from ipsecconf.records import RawRecord, section, value

# First colon followed by whitespace (or end of line); IPv6 ids keep their colons
_SECRET_SEPARATOR = re.compile(r"^(.*?)\s*:(?=\s|$)\s*(.*)$")


def _is_skipped(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def parse_ipsec_conf(text: str) -> List[RawRecord]:
    records = []
    current = None
    for line in (text or "").splitlines():
        line = line.rstrip()
        if _is_skipped(line):
            continue
        if not line[0].isspace():
            current = section(line.strip())
            records.append(current)
            continue
        if current is None or "=" not in line:
            continue
        key, val = line.strip().split("=", 1)
        current.value.append(value(key.strip(), val.strip()))
    return records


def format_ipsec_conf(tree: RawRecord) -> str:
    blocks = []
    for sect in tree.entries:
        lines = [sect.name]
        lines += [f"\t{entry.name}={entry.value}" for entry in sect.entries]
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def parse_ipsec_secrets(text: str) -> List[RawRecord]:
    records = []
    for line in (text or "").splitlines():
        if _is_skipped(line):
            continue
        match = _SECRET_SEPARATOR.match(line.strip())
        if match:
            records.append(value(match.group(1).strip(), match.group(2).strip()))
        else:
            records.append(value(line.strip(), ""))
    return records


def format_ipsec_secrets(tree: RawRecord) -> str:
    lines = []
    for entry in tree.entries:
        if entry.name:
            lines.append(f"{entry.name} : {entry.value}")
        else:
            lines.append(f": {entry.value}")
    return "".join(line + "\n" for line in lines)
