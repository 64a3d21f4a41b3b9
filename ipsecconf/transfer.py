import logging
from typing import Any, Dict, Optional

from ipsecconf.config_schema import Connection, Secret, SecretBuckets, SecretType, empty_buckets

logger = logging.getLogger("IPsecConf")


def _connections_from_dict(data: Any) -> Dict[str, Connection]:
    connections = {}
    if data is None:
        return connections
    if not isinstance(data, dict):
        logger.warning(f"Ignoring ipsec_conns: expected a mapping, got {type(data).__name__}")
        return connections
    for name, params in data.items():
        if params is not None and not isinstance(params, dict):
            logger.warning(f"Ignoring connection {name}: parameters must be a mapping")
            continue
        conn = Connection(
            name=str(name),
            params={str(k): "" if v is None else str(v) for k, v in (params or {}).items()}
        )
        try:
            conn.validate()
        except ValueError as e:
            logger.warning(f"Ignoring connection {name!r}: {e}")
            continue
        connections[conn.name] = conn
    return connections


def _secrets_from_dict(data: Any) -> SecretBuckets:
    buckets = empty_buckets()
    if data is None:
        return buckets
    if not isinstance(data, dict):
        logger.warning(f"Ignoring ipsec_secrets: expected a mapping, got {type(data).__name__}")
        return buckets
    for type_name, entries in data.items():
        key_type = SecretType.from_token(str(type_name))
        if key_type is None:
            logger.warning(f"Ignoring unknown secret type {type_name}")
            continue
        if entries is not None and not isinstance(entries, list):
            logger.warning(f"Ignoring {key_type.value} secrets: expected a list")
            continue
        for entry in entries or []:
            if not isinstance(entry, dict):
                logger.warning(f"Ignoring {key_type.value} secret entry that is not a mapping")
                continue
            secret = Secret(
                id=str(entry.get("id", "")),
                type=key_type,
                content=str(entry.get("secret", ""))
            )
            try:
                secret.validate()
            except ValueError as e:
                logger.warning(f"Ignoring {key_type.value} secret for {secret.id!r}: {e}")
                continue
            buckets[key_type].append(secret)
    return buckets


def import_state(session, payload: Optional[Dict[str, Any]]) -> bool:
    """Replaces the session's settings, connections and secrets.

    Returns False without touching the session when there is no payload.
    Malformed parts of a present payload are skipped, never raised.
    """
    if payload is None:
        return False
    if not isinstance(payload, dict):
        logger.warning(f"Import payload is a {type(payload).__name__}, not a mapping; importing defaults")
        payload = {}
    daemon_enabled = bool(payload.get("enable_ipsec"))
    tcp_mss_1024 = bool(payload.get("tcp_mss_1024"))
    connections = _connections_from_dict(payload.get("ipsec_conns"))
    secrets = _secrets_from_dict(payload.get("ipsec_secrets"))

    session.settings.daemon_enabled = daemon_enabled
    session.settings.tcp_mss_1024_enabled = tcp_mss_1024
    session.connections = connections
    session.secrets = secrets
    session.settings.modified = True
    return True


def export_state(session) -> Dict[str, Any]:
    return {
        "enable_ipsec": session.settings.daemon_enabled,
        "tcp_mss_1024": session.settings.tcp_mss_1024_enabled,
        "ipsec_conns": {name: dict(conn.params) for name, conn in session.connections.items()},
        "ipsec_secrets": {
            key_type.value: [{"id": s.id, "secret": s.content} for s in session.secrets.get(key_type, [])]
            for key_type in SecretType
        }
    }
