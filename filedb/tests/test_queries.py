import random
from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import TestCase, override_settings

from filedb.errors import InvalidEntry
from filedb.queries import EntryRef, LazySequence, Version, VersionInfo
from filedb.store import FileStore

BASE = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)


def at(hours: int) -> datetime:
    return BASE + timedelta(hours=hours)


class ListByKeyTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()

    def test_versions_are_ascending_regardless_of_insert_order(self):
        hours = list(range(20))
        random.Random(7).shuffle(hours)
        for hour in hours:
            self.store.put("log.txt", at(hour), f"v{hour}".encode())

        versions = list(self.store.list_by_key("log.txt"))
        timestamps = [version.timestamp for version in versions]

        self.assertEqual(timestamps, [at(hour) for hour in range(20)])
        self.assertTrue(all(a < b for a, b in zip(timestamps, timestamps[1:])))
        self.assertEqual(versions[3], Version(at(3), b"v3"))

    def test_only_versions_of_the_key_are_listed(self):
        self.store.put("a.txt", at(1), b"a1")
        self.store.put("b.txt", at(2), b"b2")
        self.store.put("a.txt", at(3), b"a3")

        self.assertEqual(
            list(self.store.list_by_key("a.txt")),
            [(at(1), b"a1"), (at(3), b"a3")],
        )

    def test_unknown_key_gives_empty_sequence(self):
        self.assertEqual(list(self.store.list_by_key("missing")), [])

    def test_sequence_is_lazy_and_restartable(self):
        versions = self.store.list_by_key("log.txt")
        self.assertIsInstance(versions, LazySequence)

        self.store.put("log.txt", at(1), b"one")
        self.assertEqual(list(versions), [(at(1), b"one")])

        self.store.put("log.txt", at(2), b"two")
        self.assertEqual(list(versions), [(at(1), b"one"), (at(2), b"two")])

    @override_settings(FILEDB_ITERATOR_CHUNK_SIZE=2)
    def test_small_chunks_return_every_row(self):
        for hour in range(7):
            self.store.put("log.txt", at(hour), bytes([hour]))
        self.assertEqual(
            [version.payload for version in self.store.list_by_key("log.txt")],
            [bytes([hour]) for hour in range(7)],
        )


class LatestTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()

    def test_latest_is_maximum_timestamp(self):
        for hour in (5, 1, 9, 3):
            self.store.put("log.txt", at(hour), f"v{hour}".encode())

        latest = self.store.latest("log.txt")
        self.assertEqual(latest, (at(9), b"v9"))
        self.assertEqual(latest, list(self.store.list_by_key("log.txt"))[-1])

    def test_latest_of_unknown_key_is_none(self):
        self.store.put("other.txt", at(1), b"x")
        self.assertIsNone(self.store.latest("log.txt"))
        self.assertEqual(list(self.store.list_by_key("log.txt")), [])

    def test_latest_follows_deletes(self):
        self.store.put("log.txt", at(1), b"old")
        self.store.put("log.txt", at(2), b"new")
        self.store.delete("log.txt", at(2))
        self.assertEqual(self.store.latest("log.txt"), (at(1), b"old"))

        self.store.delete("log.txt", at(1))
        self.assertIsNone(self.store.latest("log.txt"))

    def test_latest_compares_instants_across_offsets(self):
        behind = dt_timezone(timedelta(hours=-5))
        # 08:00-05:00 is 13:00 UTC, later than 12:00 UTC
        self.store.put("log.txt", BASE.replace(hour=12), b"utc")
        self.store.put("log.txt", datetime(2024, 1, 1, 8, tzinfo=behind), b"eastern")

        latest = self.store.latest("log.txt")
        self.assertEqual(latest.payload, b"eastern")
        self.assertEqual(latest.timestamp, at(13))


class RangeTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()
        for hour in range(1, 6):
            self.store.put("log.txt", at(hour), f"v{hour}".encode())
        self.store.put("other.txt", at(3), b"other")

    def hours(self, versions):
        return [int((version.timestamp - BASE).total_seconds() // 3600) for version in versions]

    def test_default_bounds_include_start_and_exclude_end(self):
        self.assertEqual(self.hours(self.store.range("log.txt", at(2), at(4))), [2, 3])

    def test_flipped_flags_exclude_start_and_include_end(self):
        versions = self.store.range(
            "log.txt", at(2), at(4), inclusive_from=False, inclusive_to=True
        )
        self.assertEqual(self.hours(versions), [3, 4])

    def test_both_inclusive(self):
        versions = self.store.range("log.txt", at(2), at(4), inclusive_to=True)
        self.assertEqual(self.hours(versions), [2, 3, 4])

    def test_both_exclusive(self):
        versions = self.store.range("log.txt", at(2), at(4), inclusive_from=False)
        self.assertEqual(self.hours(versions), [3])

    def test_bounds_between_versions(self):
        versions = self.store.range(
            "log.txt", at(1) + timedelta(minutes=30), at(3) + timedelta(minutes=30)
        )
        self.assertEqual(self.hours(versions), [2, 3])

    def test_incremental_polling_does_not_repeat_the_previous_bound(self):
        first = list(self.store.range("log.txt", at(0), at(3), inclusive_to=True))
        last_seen = first[-1].timestamp
        second = list(
            self.store.range("log.txt", last_seen, at(10), inclusive_from=False, inclusive_to=True)
        )
        self.assertEqual(self.hours(first), [1, 2, 3])
        self.assertEqual(self.hours(second), [4, 5])

    def test_empty_and_reversed_ranges(self):
        self.assertEqual(list(self.store.range("log.txt", at(3), at(3))), [])
        self.assertEqual(
            self.hours(self.store.range("log.txt", at(3), at(3), inclusive_to=True)), [3]
        )
        self.assertEqual(list(self.store.range("log.txt", at(5), at(1))), [])

    def test_range_payloads_and_key_isolation(self):
        versions = list(self.store.range("other.txt", at(0), at(10)))
        self.assertEqual(versions, [(at(3), b"other")])

    def test_naive_bounds_are_rejected(self):
        with self.assertRaises(InvalidEntry):
            self.store.range("log.txt", datetime(2024, 1, 1), at(4))


class VersionInfoTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()
        self.store.put("log.txt", at(2), b"two")
        self.store.put("log.txt", at(1), b"")
        self.store.put("log.txt", at(3), bytes(1000))
        self.store.put("other.txt", at(1), b"xyz")

    def test_sizes_are_reported_without_payloads(self):
        self.assertEqual(
            list(self.store.version_info("log.txt")),
            [VersionInfo(at(1), 0), VersionInfo(at(2), 3), VersionInfo(at(3), 1000)],
        )

    def test_bounds_follow_range_semantics(self):
        info = self.store.version_info(
            "log.txt", start=at(1), end=at(3), inclusive_from=False, inclusive_to=True
        )
        self.assertEqual([item.timestamp for item in info], [at(2), at(3)])

    def test_one_sided_bounds_are_rejected(self):
        with self.assertRaises(InvalidEntry):
            self.store.version_info("log.txt", start=at(1))


class CatalogueTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()

    def test_list_all_orders_by_key_then_timestamp(self):
        self.store.put("b.txt", at(2), b"")
        self.store.put("a.txt", at(3), b"")
        self.store.put("b.txt", at(1), b"")
        self.store.put("a.txt", at(1), b"")

        self.assertEqual(
            list(self.store.list_all()),
            [
                EntryRef("a.txt", at(1)),
                EntryRef("a.txt", at(3)),
                EntryRef("b.txt", at(1)),
                EntryRef("b.txt", at(2)),
            ],
        )

    def test_keys_are_distinct_and_sorted(self):
        for key, hour in (("c", 1), ("a", 1), ("c", 2), ("b", 1), ("a", 2)):
            self.store.put(key, at(hour), b"")
        self.assertEqual(list(self.store.keys()), ["a", "b", "c"])

    def test_empty_store(self):
        self.assertEqual(list(self.store.list_all()), [])
        self.assertEqual(list(self.store.keys()), [])


class PurgeTests(TestCase):
    def setUp(self):
        self.store = FileStore()
        self.store.initialize()
        for hour in range(4):
            self.store.put("a.txt", at(hour), b"a")
            self.store.put("b.txt", at(hour), b"b")

    def test_purge_removes_versions_strictly_before_cutoff(self):
        removed = self.store.purge_before(at(2))

        self.assertEqual(removed, 4)
        self.assertEqual([v.timestamp for v in self.store.list_by_key("a.txt")], [at(2), at(3)])
        self.assertEqual(self.store.get("b.txt", at(2)), b"b")

    def test_purge_can_be_limited_to_one_key(self):
        removed = self.store.purge_before(at(3), key="a.txt")

        self.assertEqual(removed, 3)
        self.assertEqual(len(list(self.store.list_by_key("a.txt"))), 1)
        self.assertEqual(len(list(self.store.list_by_key("b.txt"))), 4)

    def test_purge_with_nothing_to_remove(self):
        self.assertEqual(self.store.purge_before(at(0)), 0)

    def test_purge_expired_is_disabled_by_default(self):
        self.assertEqual(self.store.purge_expired(now=at(24 * 400)), 0)
        self.assertEqual(len(list(self.store.list_all())), 8)

    @override_settings(FILEDB_RETENTION_DAYS=1)
    def test_purge_expired_applies_retention_window(self):
        # Cutoff is 02:00 on the first day
        removed = self.store.purge_expired(now=at(26))
        self.assertEqual(removed, 4)
        self.assertEqual(self.store.latest("a.txt").timestamp, at(3))

    @override_settings(FILEDB_RETENTION_DAYS=0)
    def test_invalid_retention_setting(self):
        with self.assertRaises(ValueError):
            self.store.purge_expired(now=at(26))
