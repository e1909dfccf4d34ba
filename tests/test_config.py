import pathlib
import tempfile
import unittest
from datetime import datetime, timedelta, timezone

from dmelog.config import AppPaths, DatalogConfig, config_from_mapping, load_config, save_config
from dmelog.dataio.file_paths import export_file_name, export_path, iso_timestamp


class DatalogConfigTest(unittest.TestCase):
    def test_defaults(self):
        cfg = DatalogConfig()
        self.assertEqual(cfg.poll_interval_ms, 300)
        self.assertEqual(cfg.poll_max_lines, 300)
        self.assertEqual(cfg.max_log_lines, 1000)
        self.assertEqual(cfg.max_samples, 20_000)
        self.assertEqual(cfg.product_name, "hofwerks")
        self.assertEqual(cfg.profile, "MEVD17.2")

    def test_mapping_prefers_datalog_block_and_ignores_unknown_keys(self):
        payload = {
            "datalog": {"poll_interval_ms": 150, "product_name": "tuner"},
            "unrelated": {"x": 1},
            "bogus_key": 3,
        }
        cfg = config_from_mapping(payload)
        self.assertEqual(cfg.poll_interval_ms, 150)
        self.assertEqual(cfg.product_name, "tuner")
        self.assertEqual(cfg.max_samples, 20_000)

    def test_sanitized_clamps_limits(self):
        cfg = DatalogConfig(
            poll_interval_ms=1,
            max_samples=0,
            product_name="  ",
            connection_mode="serial",
            scale_mode="log",
            profile="MSV70",
        ).sanitized()
        self.assertEqual(cfg.poll_interval_ms, 10)
        self.assertEqual(cfg.max_samples, 1)
        self.assertEqual(cfg.product_name, "hofwerks")
        self.assertEqual(cfg.connection_mode, "simulator")
        self.assertEqual(cfg.scale_mode, "per_parameter")
        self.assertEqual(cfg.profile, "MEVD17.2")

    def test_load_and_save_round_trip(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "nested" / "dmelog.yaml"
            self.assertEqual(load_config(path), DatalogConfig())

            save_config(path, DatalogConfig(poll_max_lines=42, profile="MSD80/81"))
            loaded = load_config(path)
            self.assertEqual(loaded.poll_max_lines, 42)
            self.assertEqual(loaded.profile, "MSD80/81")

    def test_load_rejects_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "bad.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)


def test_app_paths_honour_env_overrides(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DMELOG_DATA_ROOT", str(tmp_path / "root"))
    monkeypatch.setenv("DMELOG_LOG_DIR", str(tmp_path / "logs"))
    paths = AppPaths()
    assert paths.exports == tmp_path / "root" / "exports"
    assert paths.saved_logs == tmp_path / "root" / "saved"
    assert paths.logs == tmp_path / "logs"

    explicit = AppPaths(data_root=tmp_path / "explicit")
    assert explicit.config_file == tmp_path / "explicit" / "dmelog.yaml"
    explicit.ensure()
    assert explicit.exports.is_dir()


def test_export_file_names(tmp_path) -> None:
    now = datetime(2026, 2, 17, 16, 10, 5, 987654, tzinfo=timezone(timedelta(hours=1)))
    assert iso_timestamp(now) == "2026-02-17T15:10:05.987Z"
    assert export_file_name(now=now) == "hofwerks_datalog_2026-02-17T15-10-05.987Z.csv"
    assert export_file_name("my tool", now=now).startswith("my_tool_datalog_")
    assert export_path("hofwerks", now, base=tmp_path).parent == tmp_path
    assert export_path(now=now).parent == tmp_path / "data" / "exports"
