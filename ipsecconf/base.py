from abc import ABC, abstractmethod
from typing import List, Optional
from ipsecconf.config_schema import ToolConfig
from ipsecconf.records import RawRecord
import logging

class HostBackend(ABC):
    def __init__(self, config: ToolConfig, logger: logging.Logger):
        self.config = config
        self.logger = logger

    @abstractmethod
    def read_connection_records(self) -> List[RawRecord]:
        """Returns the top-level sections of ipsec.conf."""
        pass

    @abstractmethod
    def read_secret_records(self) -> List[RawRecord]:
        """Returns the entries of ipsec.secrets."""
        pass

    @abstractmethod
    def write_connection_records(self, tree: RawRecord) -> bool:
        pass

    @abstractmethod
    def write_secret_records(self, tree: RawRecord) -> bool:
        pass

    @abstractmethod
    def read_firewall_script(self) -> Optional[str]:
        """Returns the installed custom-rules script, or None if there is none."""
        pass

    @abstractmethod
    def write_firewall_script(self, script: str) -> bool:
        pass

    @abstractmethod
    def daemon_enabled(self) -> bool:
        pass

    @abstractmethod
    def firewall_enabled(self) -> bool:
        pass

    @abstractmethod
    def firewall_started(self) -> bool:
        pass
