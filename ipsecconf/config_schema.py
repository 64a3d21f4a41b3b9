import json
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List

import yaml

DEFAULT_SECTION = "%default"

LOGGING_TYPES = ["file", "syslog", "stdout"]


class SecretType(Enum):
    PSK = "psk"
    RSA = "rsa"
    EAP = "eap"
    XAUTH = "xauth"

    @classmethod
    def from_token(cls, token: str) -> Optional['SecretType']:
        """Returns the member named by a case-insensitive keyword, or None."""
        if not token:
            return None
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


@dataclass
class Connection:
    name: str
    params: Dict[str, str] = field(default_factory=dict)

    def validate(self):
        if not self.name: raise ValueError("Connection name is required")
        if self.name == DEFAULT_SECTION:
            raise ValueError(f"Connection name cannot be {DEFAULT_SECTION}")


@dataclass
class Secret:
    id: str
    type: SecretType
    content: str

    def validate(self):
        # "RSA " with no key file reads back as an unsupported entry
        if self.type == SecretType.RSA and not self.content.strip():
            raise ValueError("RSA secret requires a key file name")


SecretBuckets = Dict[SecretType, List[Secret]]


def empty_buckets() -> SecretBuckets:
    return {t: [] for t in SecretType}


@dataclass
class GlobalSettings:
    daemon_enabled: bool = False
    tcp_mss_1024_enabled: bool = False
    modified: bool = False


@dataclass
class ToolConfig:
    ipsec_conf_path: str = "/etc/ipsec.conf"
    ipsec_secrets_path: str = "/etc/ipsec.secrets"
    firewall_script_path: str = "/etc/ipsecconf/vpn_firewall_rules"
    daemon_unit: str = "strongswan"
    firewall_unit: str = "SuSEfirewall2"
    logging_level: str = "info"
    logging_type: str = "file" # file, syslog, stdout
    log_file: str = "/var/log/ipsecconf.log"
    command_timeout: int = 30

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolConfig':
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config parsing error: expected a mapping, got {type(data).__name__}")
        try:
            defaults = cls()
            paths = data.get("paths", {}) or {}
            units = data.get("units", {}) or {}
            return cls(
                ipsec_conf_path=paths.get("ipsec_conf", defaults.ipsec_conf_path),
                ipsec_secrets_path=paths.get("ipsec_secrets", defaults.ipsec_secrets_path),
                firewall_script_path=paths.get("firewall_script", defaults.firewall_script_path),
                daemon_unit=units.get("daemon", defaults.daemon_unit),
                firewall_unit=units.get("firewall", defaults.firewall_unit),
                logging_level=data.get("logging", defaults.logging_level),
                logging_type=data.get("logging_type", defaults.logging_type),
                log_file=data.get("log_file", defaults.log_file),
                command_timeout=int(data.get("command_timeout", defaults.command_timeout))
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ValueError(f"Config parsing error: {e}")

    def validate(self):
        if self.logging_type not in LOGGING_TYPES:
            raise ValueError(f"Invalid logging type: {self.logging_type}")
        if self.command_timeout <= 0:
            raise ValueError("Command timeout must be positive")
        for p in [self.ipsec_conf_path, self.ipsec_secrets_path, self.firewall_script_path]:
            if not p: raise ValueError("Configuration file paths cannot be empty")


def read_structured_file(file_path: str) -> Any:
    """Reads a JSON or YAML document, choosing the parser by file extension."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path, 'r') as f:
        content = f.read()

    if file_path.endswith('.json'):
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse {file_path} as JSON: {e}")
    elif file_path.endswith('.yaml') or file_path.endswith('.yml'):
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValueError(f"Could not parse {file_path} as YAML: {e}")
    else:
        # Try JSON first
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            try:
                return yaml.safe_load(content)
            except yaml.YAMLError:
                raise ValueError("Could not parse config as JSON or YAML.")


def load_config(file_path: str) -> ToolConfig:
    config = ToolConfig.from_dict(read_structured_file(file_path))
    config.validate()
    # Relative log files live next to the config file, not in the working directory
    if not os.path.isabs(config.log_file):
        config.log_file = os.path.join(os.path.dirname(os.path.abspath(file_path)), config.log_file)
    return config


def load_transfer_file(file_path: str) -> Dict[str, Any]:
    data = read_structured_file(file_path)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Transfer file {file_path} must contain a mapping")
    return data
