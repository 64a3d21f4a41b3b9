from typing import Dict

from ipsecconf.config_schema import Connection, SecretBuckets, SecretType
from ipsecconf.records import RawRecord, root, section, value


def serialize_connections(connections: Dict[str, Connection]) -> RawRecord:
    """Builds the ipsec.conf record tree, one `conn` section per connection."""
    return root([
        section("conn " + name, [value(k, v) for k, v in conn.params.items()])
        for name, conn in connections.items()
    ])


def format_secret(key_type: SecretType, content: str) -> str:
    keyword = key_type.value.upper()
    # RSA takes a key file name, everything else is a quoted string
    if key_type == SecretType.RSA:
        return f"{keyword} {content}"
    return f'{keyword} "{content}"'


def serialize_secrets(secrets: SecretBuckets) -> RawRecord:
    """Builds the flat ipsec.secrets record tree, buckets in SecretType order."""
    nodes = []
    for key_type in SecretType:
        for secret in secrets.get(key_type, []):
            nodes.append(value(secret.id, format_secret(key_type, secret.content)))
    return root(nodes)
