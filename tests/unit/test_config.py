import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from compass_core.config import AppConfig, config_path, effective_ollama_host, load_config, save_config


class ConfigTests(unittest.TestCase):
    def test_load_default_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "missing.json"
            cfg = load_config(path)
            self.assertIsInstance(cfg, AppConfig)
            self.assertEqual(cfg.server.port, 7171)
            self.assertEqual(cfg.realtime.queue_size, 8)
            self.assertEqual(cfg.ollama.host, "http://localhost:11434")
            self.assertIn("https://ollamalyzer.com", cfg.server.cors_origins)

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = load_config(path)
            cfg.server.port = 8181
            cfg.realtime.queue_size = 32
            save_config(cfg, path)
            reloaded = load_config(path)
            self.assertEqual(reloaded.server.port, 8181)
            self.assertEqual(reloaded.realtime.queue_size, 32)

    def test_migrate_v1_shape(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            old = {"port": 9000, "ollama_host": "http://gpu-box:11434/"}
            path.write_text(json.dumps(old), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.config_version, 2)
            self.assertEqual(cfg.server.port, 9000)
            self.assertEqual(cfg.ollama.host, "http://gpu-box:11434")

    def test_out_of_range_values_are_normalized(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "config_version": 2,
                "server": {"port": 70000, "unknown_key": True},
                "realtime": {"poll_ms": 5, "queue_size": "lots"},
                "ollama": {"status_timeout_s": "soon"},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.server.port, 7171)
            self.assertFalse(hasattr(cfg.server, "unknown_key"))
            self.assertFalse(hasattr(cfg.realtime, "poll_ms"))
            self.assertEqual(cfg.realtime.queue_size, 8)
            self.assertEqual(cfg.ollama.status_timeout_s, 5.0)

    def test_unreadable_file_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), AppConfig())

    def test_home_override(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch.dict(os.environ, {"OLLAMA_COMPASS_HOME": tmp}):
                self.assertEqual(config_path(), Path(tmp) / "config.json")

    def test_ollama_host_env_override(self):
        cfg = AppConfig()
        with patch.dict(os.environ, {"OLLAMA_HOST": "127.0.0.1:11500"}):
            self.assertEqual(effective_ollama_host(cfg), "http://127.0.0.1:11500")
        with patch.dict(os.environ, {"OLLAMA_HOST": ""}):
            self.assertEqual(effective_ollama_host(cfg), "http://localhost:11434")


if __name__ == "__main__":
    unittest.main()
