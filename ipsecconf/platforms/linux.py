import os
import subprocess
import logging
from pathlib import Path
from typing import List, Optional
from ipsecconf.base import HostBackend
from ipsecconf.config_schema import ToolConfig
from ipsecconf.ini_format import format_ipsec_conf, format_ipsec_secrets, parse_ipsec_conf, parse_ipsec_secrets
from ipsecconf.records import RawRecord

SECRETS_FILE_MODE = 0o600

class LinuxBackend(HostBackend):
    def __init__(self, config: ToolConfig, logger: logging.Logger):
        super().__init__(config, logger)

    def run_systemctl(self, action: str, unit: str) -> bool:
        """Runs a systemctl query and returns True if it exited with status 0."""
        cmd = ["systemctl", action, unit]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.config.command_timeout
            )
            self.logger.debug(f"{' '.join(cmd)}: {result.stdout.strip()}")
            return result.returncode == 0
        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out: {' '.join(cmd)}")
            return False
        except OSError as e:
            self.logger.error(f"Could not run {' '.join(cmd)}: {e}")
            return False

    def _read_text(self, file_path: str) -> Optional[str]:
        path = Path(file_path)
        if not path.exists():
            self.logger.info(f"{file_path} does not exist yet")
            return None
        try:
            return path.read_text()
        except OSError as e:
            self.logger.error(f"Failed to read {file_path}: {e}")
            return None

    def _write_text(self, file_path: str, content: str, mode: int = None) -> bool:
        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            if mode is not None:
                os.chmod(path, mode)
            self.logger.info(f"Wrote {file_path}")
            return True
        except OSError as e:
            self.logger.error(f"Failed to write {file_path}: {e}")
            return False

    def read_connection_records(self) -> List[RawRecord]:
        return parse_ipsec_conf(self._read_text(self.config.ipsec_conf_path))

    def read_secret_records(self) -> List[RawRecord]:
        return parse_ipsec_secrets(self._read_text(self.config.ipsec_secrets_path))

    def write_connection_records(self, tree: RawRecord) -> bool:
        return self._write_text(self.config.ipsec_conf_path, format_ipsec_conf(tree))

    def write_secret_records(self, tree: RawRecord) -> bool:
        return self._write_text(self.config.ipsec_secrets_path, format_ipsec_secrets(tree), SECRETS_FILE_MODE)

    def read_firewall_script(self) -> Optional[str]:
        return self._read_text(self.config.firewall_script_path)

    def write_firewall_script(self, script: str) -> bool:
        return self._write_text(self.config.firewall_script_path, script)

    def daemon_enabled(self) -> bool:
        return self.run_systemctl("is-enabled", self.config.daemon_unit)

    def firewall_enabled(self) -> bool:
        return self.run_systemctl("is-enabled", self.config.firewall_unit)

    def firewall_started(self) -> bool:
        return self.run_systemctl("is-active", self.config.firewall_unit)
