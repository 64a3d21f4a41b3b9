"""Classify raw ipsec.conf / ipsec.secrets records into the structured model.

Every input record ends up either as a modeled entity or as an unsupported
entry label; nothing is dropped and nothing raises.
"""
import re
from typing import Dict, List, Tuple

from ipsecconf.config_schema import Connection, DEFAULT_SECTION, Secret, SecretBuckets, SecretType, empty_buckets
from ipsecconf.records import RawRecord

_WHITESPACE = re.compile(r"\s+")


def _split_two(text: str) -> List[str]:
    """Splits on the first run of whitespace, the way `ipsec.conf` tokenizes headers."""
    text = text.strip()
    if not text:
        return []
    return _WHITESPACE.split(text, maxsplit=1)


def parse_connections(records: List[RawRecord]) -> Tuple[Dict[str, Connection], List[str]]:
    connections: Dict[str, Connection] = {}
    unsupported: List[str] = []
    for record in records:
        tokens = _split_two(record.name)
        if len(tokens) == 2 and tokens[0] == "conn" and tokens[1] != DEFAULT_SECTION:
            name = tokens[1].strip()
            params = {}
            for entry in record.entries:
                if isinstance(entry.value, list):
                    continue
                params[entry.name.strip()] = entry.value.strip()
            if name in connections:
                # Later section wins; the earlier one is still accounted for
                unsupported.append("conn " + name)
            connections[name] = Connection(name=name, params=params)
        else:
            # CA, config setup, include and %default sections are not modeled
            unsupported.append(record.name.strip())
    return connections, unsupported


def parse_secrets(records: List[RawRecord]) -> Tuple[SecretBuckets, List[str]]:
    buckets = empty_buckets()
    unsupported: List[str] = []
    for record in records:
        left_side = record.name.strip()
        right_side = record.value if isinstance(record.value, str) else ""
        tokens = _split_two(right_side)
        key_type = SecretType.from_token(tokens[0]) if len(tokens) == 2 else None
        if key_type is not None:
            content = tokens[1].strip().replace('"', '')
            buckets[key_type].append(Secret(id=left_side, type=key_type, content=content))
        else:
            head = tokens[0] if tokens else ""
            unsupported.append((left_side + " " + head).strip())
    return buckets, unsupported
