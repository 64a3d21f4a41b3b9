import argparse
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler, SysLogHandler
from typing import Any, Dict, List, Optional

import yaml

from ipsecconf.base import HostBackend
from ipsecconf.config_schema import (Connection, GlobalSettings, Secret, SecretBuckets, ToolConfig,
                                     empty_buckets, load_config, load_transfer_file)
from ipsecconf.firewall import generate_firewall_script, mss_clamp_enabled
from ipsecconf.parsers import parse_connections, parse_secrets
from ipsecconf.serializer import serialize_connections, serialize_secrets
from ipsecconf.topology import TopologyView, classify
from ipsecconf.transfer import export_state, import_state

# Constants
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 3
DEFAULT_CONFIG_PATH = "/etc/ipsecconf/config.yaml"


def setup_logging(config: Optional[ToolConfig] = None) -> logging.Logger:
    log_level = logging.INFO
    if config and config.logging_level.lower() == "debug":
        log_level = logging.DEBUG

    handlers = []
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s")
    log_type = config.logging_type if config else "stdout"

    if log_type == "syslog":
        # /dev/log on Linux, /var/run/syslog on macOS
        address = "/dev/log" if os.path.exists("/dev/log") else ("/var/run/syslog" if os.path.exists("/var/run/syslog") else ('localhost', 514))
        sh = SysLogHandler(address=address)
        sh.setFormatter(logging.Formatter('%(name)s: %(message)s'))
        handlers.append(sh)

    if log_type == "file":
        try:
            fh = RotatingFileHandler(config.log_file, maxBytes=MAX_LOG_SIZE, backupCount=LOG_BACKUP_COUNT)
            fh.setFormatter(formatter)
            handlers.append(fh)
        except OSError as e:
            # e.g. /var/log not writable for an unprivileged user
            print(f"Cannot open log file {config.log_file} ({e}). Logging to stdout only.", file=sys.stderr)

    if log_type == "stdout" or log_type == "file":
        sh = logging.StreamHandler(sys.stdout)
        sh.setFormatter(formatter)
        handlers.append(sh)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    return logging.getLogger("IPsecConf")


class IPsecConfSession:
    """In-memory IPsec configuration owned by one caller.

    Holds the connection map, the secret buckets and the global flags, and
    moves them between the backend's raw records and the structured model.
    """

    def __init__(self, backend: Optional[HostBackend] = None, logger: Optional[logging.Logger] = None):
        self.backend = backend
        self.logger = logger or logging.getLogger("IPsecConf")
        self.reset()

    def reset(self):
        """Clears all connections and secrets, and resets all flags."""
        self.connections: Dict[str, Connection] = {}
        self.secrets: SecretBuckets = empty_buckets()
        self.unsupported_connections: List[str] = []
        self.unsupported_secrets: List[str] = []
        self.settings = GlobalSettings()

    def read(self):
        self.logger.info("Reading IPsec configuration")
        self.connections, self.unsupported_connections = parse_connections(self.backend.read_connection_records())
        self.logger.info(f"Loaded IPsec connections: {list(self.connections)}")
        self.logger.info(f"Unsupported configuration: {self.unsupported_connections}")

        self.secrets, self.unsupported_secrets = parse_secrets(self.backend.read_secret_records())
        # Never log secret content
        loaded = [f"{s.id} {s.type.value}".strip() for bucket in self.secrets.values() for s in bucket]
        self.logger.info(f"Loaded IPsec keys and secrets: {loaded}")
        self.logger.info(f"Unsupported secrets: {self.unsupported_secrets}")

        self.settings.daemon_enabled = self.backend.daemon_enabled()
        self.settings.tcp_mss_1024_enabled = mss_clamp_enabled(self.backend.read_firewall_script())
        self.settings.modified = False

    def write(self) -> bool:
        self.logger.info(f"Writing IPsec configuration, connections are: {list(self.connections)}")
        successful = True
        if not self.backend.write_connection_records(serialize_connections(self.connections)):
            self.logger.error("Failed to write IPsec connections")
            successful = False
        if not self.backend.write_secret_records(serialize_secrets(self.secrets)):
            self.logger.error("Failed to write IPsec secrets")
            successful = False
        if not self.backend.write_firewall_script(self.firewall_script()):
            self.logger.error("Failed to write firewall script")
            successful = False

        view = self.topology()
        if view.ipv4_forward_needed:
            self.logger.info("IPv4 forwarding is required by a gateway connection")
        if view.ipv6_forward_needed:
            self.logger.info("IPv6 forwarding is required by a gateway connection")
        if not self.backend.firewall_enabled():
            self.logger.warning(f"Firewall is not enabled, {self.backend.config.firewall_script_path} "
                                "must be run manually on every boot")
        elif self.settings.daemon_enabled and not self.backend.firewall_started():
            self.logger.warning("Firewall is enabled but not active, VPN traffic will not pass until it starts")

        if successful:
            self.settings.modified = False
        return successful

    def topology(self) -> TopologyView:
        return classify(self.connections)

    def firewall_script(self) -> str:
        return generate_firewall_script(self.topology(), len(self.connections) > 0,
                                        self.settings.tcp_mss_1024_enabled)

    def set_connection(self, name: str, params: Dict[str, str]):
        conn = Connection(name=name, params=dict(params))
        conn.validate()
        self.connections[name] = conn
        self.settings.modified = True

    def delete_connection(self, name: str) -> bool:
        if self.connections.pop(name, None) is None:
            return False
        self.settings.modified = True
        return True

    def add_secret(self, secret: Secret):
        secret.validate()
        self.secrets[secret.type].append(secret)
        self.settings.modified = True

    def set_daemon_enabled(self, enabled: bool):
        self.settings.daemon_enabled = bool(enabled)
        self.settings.modified = True

    def set_tcp_mss_1024(self, enabled: bool):
        self.settings.tcp_mss_1024_enabled = bool(enabled)
        self.settings.modified = True

    def set_modified(self):
        self.settings.modified = True

    def get_modified(self) -> bool:
        return self.settings.modified

    def import_settings(self, payload: Optional[Dict[str, Any]]) -> bool:
        self.logger.info("Importing IPsec settings")
        if not import_state(self, payload):
            self.logger.warning("Import called without a payload, nothing changed")
            return False
        self.logger.info(f"Imported IPsec connections: {list(self.connections)}")
        return True

    def export_settings(self) -> Dict[str, Any]:
        self.logger.info(f"Exporting IPsec settings, connections are: {list(self.connections)}")
        return export_state(self)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ipsecconf", description="Manage IPsec connections, secrets and VPN firewall rules")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Tool configuration file (JSON or YAML)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="List connections, secret ids and unsupported entries")
    sub.add_parser("firewall", help="Print the generated firewall script")
    export = sub.add_parser("export", help="Print the current configuration as a transfer object")
    export.add_argument("--format", choices=["json", "yaml"], default="json")
    imp = sub.add_parser("import", help="Load a transfer object and write it to the system")
    imp.add_argument("file")
    return parser


def _show(session: IPsecConfSession):
    print(f"VPN daemon enabled: {session.settings.daemon_enabled}")
    print(f"TCP MSS 1024: {session.settings.tcp_mss_1024_enabled}")
    for name, conn in session.connections.items():
        print(f"conn {name}")
        for k, v in conn.params.items():
            print(f"    {k}={v}")
    for key_type, bucket in session.secrets.items():
        for secret in bucket:
            print(f"secret {secret.id} ({key_type.value})")
    for entry in session.unsupported_connections + session.unsupported_secrets:
        print(f"unsupported: {entry}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config) if os.path.exists(args.config) else ToolConfig()
    except ValueError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1
    logger = setup_logging(config)

    from ipsecconf.platforms.linux import LinuxBackend
    session = IPsecConfSession(LinuxBackend(config, logger), logger)
    session.read()

    if args.command == "show":
        _show(session)
    elif args.command == "firewall":
        sys.stdout.write(session.firewall_script())
    elif args.command == "export":
        data = session.export_settings()
        if args.format == "yaml":
            sys.stdout.write(yaml.safe_dump(data, sort_keys=False))
        else:
            print(json.dumps(data, indent=2))
    elif args.command == "import":
        try:
            payload = load_transfer_file(args.file)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Failed to load {args.file}: {e}")
            return 1
        if not session.import_settings(payload):
            return 1
        if not session.write():
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
