import tempfile
import unittest
from pathlib import Path

from minutely.config import DriftPolicy, MinutelyConfig
from minutely.config_loader import load_config, parse_config, parse_drift_policy


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def write(self, text):
        path = Path(self._tmp.name) / "minutely.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_empty_file_uses_defaults(self):
        config = load_config(self.write(""))
        self.assertEqual(config, MinutelyConfig())
        self.assertIs(config.scheduler.drift_policy, DriftPolicy.SELF_CORRECTING)
        self.assertTrue(config.scheduler.autostart)
        self.assertEqual(config.logging.level, "INFO")
        self.assertFalse(config.logging.json)

    def test_full_file(self):
        config = load_config(
            self.write(
                "scheduler:\n"
                "  drift_policy: fixed-period\n"
                "  period: 1m\n"
                "  autostart: false\n"
                "logging:\n"
                "  level: debug\n"
                "  json: true\n"
            )
        )
        self.assertIs(config.scheduler.drift_policy, DriftPolicy.FIXED_PERIOD)
        self.assertFalse(config.scheduler.autostart)
        self.assertEqual(config.logging.level, "DEBUG")
        self.assertTrue(config.logging.json)

    def test_root_must_be_mapping(self):
        with self.assertRaises(ValueError):
            load_config(self.write("- 1\n- 2\n"))

    def test_one_minute_period_spellings_are_accepted(self):
        for raw in ("1m", "60s", "60000ms", "60", 60, 60.0):
            with self.subTest(raw=raw):
                config = parse_config({"scheduler": {"period": raw}})
                self.assertEqual(config, MinutelyConfig())

    def test_sub_minute_period_is_rejected(self):
        for raw in ("500ms", "10ms", "30s", 59):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_config(
                        {"scheduler": {"drift_policy": "fixed-period", "period": raw}}
                    )

    def test_other_periods_are_rejected(self):
        for raw in ("2m", "1h", "0s", -5):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_config({"scheduler": {"period": raw}})

    def test_malformed_periods(self):
        for raw in ("", "   ", "10x", "abcs", True, [60]):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    parse_config({"scheduler": {"period": raw}})

    def test_flags_must_be_booleans(self):
        for section, key in (("scheduler", "autostart"), ("logging", "json")):
            for raw in ("false", "true", 0, 1, None):
                with self.subTest(key=key, raw=raw):
                    with self.assertRaises(ValueError):
                        parse_config({section: {key: raw}})

    def test_quoted_false_in_yaml_is_rejected(self):
        with self.assertRaises(ValueError):
            load_config(self.write("scheduler:\n  autostart: \"false\"\n"))

    def test_drift_policy_spellings(self):
        self.assertIs(parse_drift_policy("FIXED_PERIOD"), DriftPolicy.FIXED_PERIOD)
        self.assertIs(parse_drift_policy(" self-correcting "), DriftPolicy.SELF_CORRECTING)
        self.assertIs(parse_drift_policy(DriftPolicy.FIXED_PERIOD), DriftPolicy.FIXED_PERIOD)
        with self.assertRaises(ValueError):
            parse_drift_policy("sometimes")


if __name__ == "__main__":
    unittest.main()
