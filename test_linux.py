import io
import json
import os
import stat
from contextlib import redirect_stdout
import unittest
import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch
from ipsecconf.config_schema import ToolConfig
from ipsecconf.core import IPsecConfSession, main
from ipsecconf.platforms.linux import LinuxBackend
import logging

class TestLinuxBackend(unittest.TestCase):
    def setUp(self):
        self.base_dir = Path("test_output").resolve()
        self.base_dir.mkdir(exist_ok=True)
        self.logger = logging.getLogger("TestLinux")

        self.config = ToolConfig(
            ipsec_conf_path=str(self.base_dir / "ipsec.conf"),
            ipsec_secrets_path=str(self.base_dir / "ipsec.secrets"),
            firewall_script_path=str(self.base_dir / "fw" / "vpn_firewall_rules"),
            logging_type="stdout"
        )
        (self.base_dir / "ipsec.conf").write_text(
            "config setup\n\tuniqueids=yes\n\nconn gw\n\tleftsubnet=::/0\n\trightsourceip=fd00::/64\n")
        (self.base_dir / "ipsec.secrets").write_text(': PSK "TestSecret"\n')

    def tearDown(self):
        if self.base_dir.exists():
            shutil.rmtree(self.base_dir)

    @patch("ipsecconf.platforms.linux.subprocess.run")
    def test_read_write_cycle(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="enabled\n")
        backend = LinuxBackend(self.config, self.logger)
        session = IPsecConfSession(backend, self.logger)
        session.read()

        self.assertEqual(list(session.connections), ["gw"])
        self.assertEqual(session.unsupported_connections, ["config setup"])
        self.assertTrue(session.settings.daemon_enabled)
        self.assertFalse(session.settings.tcp_mss_1024_enabled)
        args, kwargs = mock_run.call_args_list[0]
        self.assertEqual(args[0], ["systemctl", "is-enabled", "strongswan"])
        self.assertEqual(kwargs["timeout"], 30)

        session.set_tcp_mss_1024(True)
        self.assertTrue(session.write())

        conf = (self.base_dir / "ipsec.conf").read_text()
        self.assertEqual(conf, "conn gw\n\tleftsubnet=::/0\n\trightsourceip=fd00::/64\n")
        secrets_path = self.base_dir / "ipsec.secrets"
        self.assertEqual(secrets_path.read_text(), ': PSK "TestSecret"\n')
        if os.name == "posix":
            self.assertEqual(stat.S_IMODE(secrets_path.stat().st_mode), 0o600)
        script = Path(self.config.firewall_script_path).read_text()
        self.assertIn("ip6tables -A FORWARD -s fd00::/64 -j ACCEPT", script)

        # The MSS flag is recovered from the written script
        session.read()
        self.assertTrue(session.settings.tcp_mss_1024_enabled)

    @patch("ipsecconf.platforms.linux.subprocess.run")
    def test_cli_export_and_import(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="disabled\n")
        config_file = self.base_dir / "config.json"
        config_file.write_text(json.dumps({
            "paths": {
                "ipsec_conf": self.config.ipsec_conf_path,
                "ipsec_secrets": self.config.ipsec_secrets_path,
                "firewall_script": self.config.firewall_script_path,
            },
            "logging_type": "stdout",
        }))
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--config", str(config_file), "export"]), 0)
        exported = json.loads(out.getvalue()[out.getvalue().index("{"):])
        self.assertEqual(exported["ipsec_conns"], {"gw": {"leftsubnet": "::/0", "rightsourceip": "fd00::/64"}})
        self.assertFalse(exported["enable_ipsec"])

        transfer_file = self.base_dir / "transfer.json"
        transfer_file.write_text(json.dumps({"tcp_mss_1024": True, "ipsec_conns": {"site": {"right": "198.51.100.1"}}}))
        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--config", str(config_file), "import", str(transfer_file)]), 0)
            self.assertEqual(main(["--config", str(config_file), "import", str(self.base_dir / "missing.json")]), 1)
        self.assertEqual((self.base_dir / "ipsec.conf").read_text(), "conn site\n\tright=198.51.100.1\n")
        self.assertEqual((self.base_dir / "ipsec.secrets").read_text(), "")
        self.assertIn("--set-mss 1024", Path(self.config.firewall_script_path).read_text())

    def test_missing_files(self):
        (self.base_dir / "ipsec.conf").unlink()
        backend = LinuxBackend(self.config, self.logger)
        self.assertEqual(backend.read_connection_records(), [])
        self.assertIsNone(backend.read_firewall_script())

    @patch("ipsecconf.platforms.linux.subprocess.run")
    def test_status_failures(self, mock_run):
        backend = LinuxBackend(self.config, self.logger)
        mock_run.return_value = MagicMock(returncode=3, stdout="inactive\n")
        self.assertFalse(backend.firewall_started())
        self.assertEqual(mock_run.call_args[0][0], ["systemctl", "is-active", "SuSEfirewall2"])
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="systemctl", timeout=30)
        self.assertFalse(backend.firewall_enabled())
        mock_run.side_effect = FileNotFoundError("systemctl")
        self.assertFalse(backend.daemon_enabled())

if __name__ == '__main__':
    unittest.main()
