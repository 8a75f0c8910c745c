import importlib.util
import json
import re
import shutil
import tempfile
import unittest
from pathlib import Path
from types import ModuleType
from unittest.mock import patch

from advent_backend.config import Settings
from advent_backend.db import SqlDbClient

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"


def load_script(name: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class PhotoScriptTests(unittest.TestCase):
    def setUp(self):
        self.photos_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.photos_dir, ignore_errors=True)

    def test_sidecar_scripts_run_and_are_idempotent(self):
        sidecar = self.photos_dir / "day1_compressed.json"
        sidecar.write_text(json.dumps({"title": "a", "Title": "A", "day": 1}), encoding="utf-8")

        for name in (
            "remove_duplicate_keys",
            "backfill_body_timestamps",
            "remove_body_timestamp",
            "normalize_photo_json",
        ):
            module = load_script(name)
            self.assertEqual(module.main(["--photos-dir", str(self.photos_dir)]), 0, name)
            snapshot = sidecar.read_bytes()
            self.assertEqual(module.main(["--photos-dir", str(self.photos_dir)]), 0, name)
            self.assertEqual(sidecar.read_bytes(), snapshot, name)

        self.assertEqual(
            json.loads(sidecar.read_text(encoding="utf-8")),
            {
                "Title": "A",
                "Subtitle": "Daddy Loves You!",
                "Body": "",
                "cache_key": "",
                "day": 1,
            },
        )

    def test_remove_originals_script(self):
        (self.photos_dir / "a.jpg").write_bytes(b"x")
        (self.photos_dir / "a_compressed.jpg").write_bytes(b"x")
        module = load_script("remove_originals")

        self.assertEqual(
            module.main(["--photos-dir", str(self.photos_dir), "--dry-run"]), 0
        )
        self.assertTrue((self.photos_dir / "a.jpg").exists())
        self.assertEqual(module.main(["--photos-dir", str(self.photos_dir)]), 0)
        self.assertFalse((self.photos_dir / "a.jpg").exists())

    def test_missing_directory_fails(self):
        module = load_script("backfill_body_timestamps")
        self.assertEqual(
            module.main(["--photos-dir", str(self.photos_dir / "missing")]), 1
        )


class MigrateScriptTests(unittest.TestCase):
    def test_local_flag_is_forwarded(self):
        module = load_script("migrate_d1")
        with patch.object(module, "run_d1_migration") as mock_run:
            self.assertEqual(module.main(["--local"]), 0)
        self.assertTrue(mock_run.call_args.kwargs["local"])

        with patch.object(module, "run_d1_migration") as mock_run:
            self.assertEqual(module.main([]), 0)
        self.assertFalse(mock_run.call_args.kwargs["local"])

    def test_failure_exit_code(self):
        module = load_script("migrate_d1")
        with patch.object(
            module, "run_d1_migration", side_effect=module.MigrationError("boom")
        ):
            self.assertEqual(module.main([]), 1)


class IssueVouchersScriptTests(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.database_url = f"sqlite+pysqlite:///{self.tmp / 'vouchers.db'}"
        self.module = load_script("issue_vouchers")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _settings(self, database_url):
        return Settings(_env_file=None, database_url=database_url)

    def test_issues_and_stores_vouchers(self):
        with patch.object(
            self.module, "get_settings", return_value=self._settings(self.database_url)
        ), patch("builtins.print") as mock_print:
            self.assertEqual(
                self.module.main(["purchase-42", "-n", "2", "-t", "premium"]), 0
            )

        body = mock_print.call_args.args[0]
        codes = [
            code.replace(" - ", "-")
            for code in re.findall(r"XMAS(?: - [A-Z2-9]{4}){3}", body)
        ]
        self.assertEqual(len(codes), 2)

        # A fresh client proves the vouchers outlive the script.
        db = SqlDbClient(self.database_url)
        for code in codes:
            voucher = db.get_voucher(code)
            self.assertEqual(voucher.purchase_id, "purchase-42")
            self.assertEqual(voucher.calendars_count, 3)

    def test_refuses_without_database(self):
        with patch.object(
            self.module, "get_settings", return_value=self._settings(None)
        ), patch("builtins.print") as mock_print:
            self.assertEqual(self.module.main(["purchase-x", "-n", "1"]), 1)
        mock_print.assert_not_called()

    def test_unreachable_database_fails(self):
        with patch.object(
            self.module,
            "get_settings",
            return_value=self._settings("sqlite:////nonexistent-dir/x/advent.db"),
        ), patch("builtins.print") as mock_print:
            self.assertEqual(self.module.main(["purchase-x"]), 1)
        mock_print.assert_not_called()

    def test_rejects_zero_count(self):
        self.assertEqual(self.module.main(["p", "-n", "0"]), 1)


if __name__ == "__main__":
    unittest.main()
