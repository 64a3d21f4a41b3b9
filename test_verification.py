import io
import sys
import logging
import unittest
import os
from contextlib import redirect_stderr
from unittest.mock import patch

from ipsecconf.config_schema import ToolConfig, load_config, load_transfer_file
from ipsecconf.core import IPsecConfSession, setup_logging

class TestConfig(unittest.TestCase):
    def _write(self, file_name, content):
        with open(file_name, "w") as f:
            f.write(content)
        self.addCleanup(lambda: os.path.exists(file_name) and os.remove(file_name))

    def test_load_valid_yaml(self):
        self._write("test_config.yaml", "paths:\n  ipsec_conf: /tmp/ipsec.conf\nunits:\n  daemon: strongswan-starter\nlogging: debug\nlogging_type: stdout\n")
        config = load_config("test_config.yaml")
        self.assertEqual(config.ipsec_conf_path, "/tmp/ipsec.conf")
        self.assertEqual(config.ipsec_secrets_path, "/etc/ipsec.secrets")
        self.assertEqual(config.daemon_unit, "strongswan-starter")
        self.assertEqual(config.logging_level, "debug")

    def test_load_json_without_extension(self):
        self._write("test_config.conf", '{"logging_type": "syslog", "command_timeout": 5}')
        config = load_config("test_config.conf")
        self.assertEqual(config.logging_type, "syslog")
        self.assertEqual(config.command_timeout, 5)

    def test_invalid_logging_type(self):
        self._write("test_bad.json", '{"logging_type": "carrier_pigeon"}')
        with self.assertRaises(ValueError):
            load_config("test_bad.json")

    def test_invalid_timeout(self):
        self._write("test_timeout.json", '{"command_timeout": "soon"}')
        with self.assertRaises(ValueError):
            load_config("test_timeout.json")

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config("does_not_exist.yaml")

    def test_empty_file_uses_defaults(self):
        self._write("test_empty.yaml", "")
        self.assertEqual(load_config("test_empty.yaml"), ToolConfig())

    def test_log_file_location(self):
        self.assertTrue(os.path.isabs(ToolConfig().log_file))
        self._write("test_logpath.json", '{"log_file": "logs/ipsecconf.log"}')
        config = load_config("test_logpath.json")
        self.assertEqual(config.log_file, os.path.join(os.getcwd(), "logs", "ipsecconf.log"))

    @patch("ipsecconf.core.RotatingFileHandler", side_effect=PermissionError("denied"))
    def test_unwritable_log_file_falls_back_to_stdout(self, mock_handler):
        with redirect_stderr(io.StringIO()):
            logger = setup_logging(ToolConfig(log_file="/nonexistent/ipsecconf.log"))
        mock_handler.assert_called_once()
        handlers = logging.getLogger().handlers
        self.assertTrue(any(isinstance(h, logging.StreamHandler) and h.stream is sys.stdout for h in handlers))
        self.assertEqual(logger.name, "IPsecConf")

    def test_transfer_file_import(self):
        self._write("test_transfer.yml",
                    "enable_ipsec: true\n"
                    "ipsec_conns:\n"
                    "  gw:\n"
                    "    leftsubnet: 0.0.0.0/0\n"
                    "    rightsourceip: 10.0.0.0/24\n"
                    "ipsec_secrets:\n"
                    "  psk:\n"
                    "    - id: alice\n"
                    "      secret: s3cret\n")
        session = IPsecConfSession()
        self.assertTrue(session.import_settings(load_transfer_file("test_transfer.yml")))
        self.assertEqual(session.topology().gateway_client_pools, ["10.0.0.0/24"])

    def test_transfer_file_must_be_mapping(self):
        self._write("test_list.json", "[1, 2]")
        with self.assertRaises(ValueError):
            load_transfer_file("test_list.json")

if __name__ == '__main__':
    unittest.main()
