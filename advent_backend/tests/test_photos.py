import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from advent_backend import photos


class SidecarPassTests(unittest.TestCase):
    def setUp(self):
        self.photos_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.photos_dir, ignore_errors=True)

    def _write(self, name: str, data) -> Path:
        path = self.photos_dir / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def _read(self, name: str) -> dict:
        return json.loads((self.photos_dir / name).read_text(encoding="utf-8"))

    def _snapshot(self) -> dict:
        return {
            p.name: p.read_bytes() for p in sorted(self.photos_dir.iterdir()) if p.is_file()
        }

    def test_backfill_body_timestamps(self):
        path = self._write(
            "day1_compressed.json",
            {"day": 1, "Body": "b", "Title": "t", "Subtitle": "s", "cache_key": "k"},
        )
        os.utime(path, (1_700_000_000, 1_700_000_000))
        self._write(
            "day2_compressed.json",
            {"Title": "t2", "body_timestamp": 123.0},
        )

        stats = photos.backfill_body_timestamps(self.photos_dir)
        self.assertEqual((stats.updated, stats.skipped, stats.errors), (1, 1, 0))

        data = self._read("day1_compressed.json")
        self.assertEqual(
            list(data), ["Title", "Subtitle", "Body", "cache_key", "day", "body_timestamp"]
        )
        self.assertEqual(data["body_timestamp"], 1_700_000_000_000)
        self.assertEqual(self._read("day2_compressed.json")["body_timestamp"], 123.0)

    def test_backfill_is_idempotent(self):
        self._write("a_compressed.json", {"Title": "a", "day": 3})
        self._write("b_compressed.json", {"Title": "b", "day": 4})

        first = photos.backfill_body_timestamps(self.photos_dir)
        snapshot = self._snapshot()
        second = photos.backfill_body_timestamps(self.photos_dir)

        self.assertEqual(first.updated, 2)
        self.assertEqual((second.updated, second.skipped), (0, 2))
        self.assertEqual(self._snapshot(), snapshot)

    def test_only_compressed_sidecars_are_touched(self):
        self._write("notes.json", {"Title": "x"})
        stats = photos.backfill_body_timestamps(self.photos_dir)
        self.assertEqual(stats.updated + stats.skipped + stats.errors, 0)
        self.assertNotIn("body_timestamp", self._read("notes.json"))

    def test_remove_body_timestamps(self):
        self._write(
            "a_compressed.json",
            {"body_timestamp": 5, "Title": "t", "Body": "b", "day": 2, "extra": 1},
        )
        self._write("b_compressed.json", {"Title": "t"})

        stats = photos.remove_body_timestamps(self.photos_dir)
        self.assertEqual((stats.updated, stats.skipped), (1, 1))
        self.assertEqual(self._read("a_compressed.json"), {"Title": "t", "Body": "b", "day": 2})

        again = photos.remove_body_timestamps(self.photos_dir)
        self.assertEqual((again.updated, again.skipped), (0, 2))

    def test_timestamp_backfill_then_removal_restores_schema(self):
        original = {"Title": "t", "Subtitle": "s", "Body": "b", "cache_key": "k", "day": 9}
        self._write("x_compressed.json", original)
        photos.backfill_body_timestamps(self.photos_dir)
        photos.remove_body_timestamps(self.photos_dir)
        self.assertEqual(self._read("x_compressed.json"), original)

    def test_remove_duplicate_keys(self):
        self._write(
            "a_compressed.json",
            {"title": "lower", "Title": "Upper", "body": "lb", "Body": "", "day": 1},
        )
        self._write("b_compressed.json", {"Title": "only", "day": 2})

        stats = photos.remove_duplicate_keys(self.photos_dir)
        self.assertEqual((stats.updated, stats.skipped), (1, 1))
        self.assertEqual(
            self._read("a_compressed.json"), {"Title": "Upper", "Body": "lb", "day": 1}
        )
        self.assertEqual(self._read("b_compressed.json"), {"Title": "only", "day": 2})

        again = photos.remove_duplicate_keys(self.photos_dir)
        self.assertEqual(again.updated, 0)

    def test_remove_duplicate_keys_empty_values_follow_last_alias(self):
        self._write(
            "a_compressed.json",
            {"title": "t", "Title": "T", "Subtitle": "", "body": "", "Body": ""},
        )
        self._write(
            "b_compressed.json",
            {"title": "t", "Title": "T", "subtitle": "", "Subtitle": ""},
        )

        photos.remove_duplicate_keys(self.photos_dir)

        # An empty title-case value with no lowercase twin is dropped.
        self.assertEqual(self._read("a_compressed.json"), {"Title": "T", "Body": ""})
        self.assertEqual(self._read("b_compressed.json"), {"Title": "T", "Subtitle": ""})

    def test_invalid_json_counts_as_error_and_continues(self):
        (self.photos_dir / "bad_compressed.json").write_text("{not json", encoding="utf-8")
        (self.photos_dir / "list_compressed.json").write_text("[1, 2]", encoding="utf-8")
        self._write("good_compressed.json", {"Title": "ok"})

        stats = photos.backfill_body_timestamps(self.photos_dir)
        self.assertEqual((stats.updated, stats.errors), (1, 2))

    def test_dry_run_writes_nothing(self):
        self._write("a_compressed.json", {"Title": "a"})
        snapshot = self._snapshot()
        stats = photos.backfill_body_timestamps(self.photos_dir, dry_run=True)
        self.assertEqual(stats.updated, 1)
        self.assertEqual(self._snapshot(), snapshot)

    def test_missing_directory_raises(self):
        with self.assertRaises(FileNotFoundError):
            photos.backfill_body_timestamps(self.photos_dir / "nope")


class NormalizeSidecarTests(unittest.TestCase):
    def setUp(self):
        self.photos_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.photos_dir, ignore_errors=True)

    def test_normalize_sidecar_aliases_and_defaults(self):
        normalized = photos.normalize_sidecar(
            {"title": "T", "summary": "S", "prompt": "P", "cacheKey": "K", "Date": 7}
        )
        self.assertEqual(
            normalized,
            {"Title": "T", "Subtitle": "S", "Body": "P", "cache_key": "K", "day": 7},
        )
        self.assertEqual(
            photos.normalize_sidecar({}),
            {
                "Title": "",
                "Subtitle": "Daddy Loves You!",
                "Body": "",
                "cache_key": "",
                "day": None,
            },
        )

    def test_normalize_sidecars_rewrites_all_json_files(self):
        (self.photos_dir / "a.json").write_text(
            json.dumps({"Title": "x", "title": "y", "Body": "b", "day": 3}), encoding="utf-8"
        )
        canonical = {"Title": "c", "Subtitle": "s", "Body": "b", "cache_key": "k", "day": 1}
        (self.photos_dir / "b_compressed.json").write_text(
            json.dumps(canonical), encoding="utf-8"
        )

        stats = photos.normalize_sidecars(self.photos_dir)
        self.assertEqual((stats.updated, stats.skipped), (1, 1))
        data = json.loads((self.photos_dir / "a.json").read_text(encoding="utf-8"))
        self.assertEqual(
            data,
            {"Title": "x", "Subtitle": "Daddy Loves You!", "Body": "b", "cache_key": "", "day": 3},
        )

        again = photos.normalize_sidecars(self.photos_dir)
        self.assertEqual((again.updated, again.skipped), (0, 2))


class RemoveOriginalsTests(unittest.TestCase):
    def setUp(self):
        self.photos_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.photos_dir, ignore_errors=True)

    def _touch(self, *names: str) -> None:
        for name in names:
            (self.photos_dir / name).write_bytes(b"x")

    def _names(self) -> set[str]:
        return {p.name for p in self.photos_dir.iterdir()}

    def test_deletes_only_originals_with_same_extension_counterpart(self):
        self._touch(
            "day1.jpg",
            "day1_compressed.jpg",
            "day1_compressed.json",
            "day2.png",
            "day2_compressed.json",
            "day3.webp",
            "day4_processed.png",
            "day5_processed.jpg",
            "day5_compressed.jpg",
        )

        stats = photos.remove_originals(self.photos_dir)

        self.assertEqual(stats.deleted, 1)
        # day2.png has only a JSON counterpart, so the pre-delete check fails.
        self.assertEqual(stats.errors, 1)
        self.assertEqual(
            self._names(),
            {
                "day1_compressed.jpg",
                "day1_compressed.json",
                "day2.png",
                "day2_compressed.json",
                "day3.webp",
                "day4_processed.png",
                "day5_processed.jpg",
                "day5_compressed.jpg",
            },
        )

    def test_deleted_iff_counterpart_exists(self):
        self._touch("a.png", "a_compressed.png", "b.png", "c_compressed.png")
        photos.remove_originals(self.photos_dir)
        for path in self.photos_dir.iterdir():
            if path.stem.endswith("_compressed"):
                continue
            counterpart = path.with_name(f"{path.stem}_compressed{path.suffix}")
            self.assertFalse(counterpart.exists(), path.name)
        self.assertNotIn("a.png", self._names())
        self.assertIn("b.png", self._names())

    def test_second_run_is_noop(self):
        self._touch("a.jpg", "a_compressed.jpg")
        first = photos.remove_originals(self.photos_dir)
        second = photos.remove_originals(self.photos_dir)
        self.assertEqual(first.deleted, 1)
        self.assertEqual((second.deleted, second.errors), (0, 0))

    def test_dry_run_keeps_files(self):
        self._touch("a.jpg", "a_compressed.jpg")
        stats = photos.remove_originals(self.photos_dir, dry_run=True)
        self.assertEqual(stats.deleted, 1)
        self.assertIn("a.jpg", self._names())


if __name__ == "__main__":
    unittest.main()
