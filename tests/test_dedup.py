import unittest
from datetime import datetime, timedelta, timezone

from agents.dedup import identity_key, merge_jobs, normalize_title_key
from models.job import JobListingEntry

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = NOW - timedelta(days=10)


def _job(title, link, **kwargs):
    return JobListingEntry(title=title, link=link, **kwargs)


class TestIdentityKey(unittest.TestCase):
    def test_title_normalization(self):
        self.assertEqual(normalize_title_key("  SSC   CGL 2025!! "), "ssc cgl 2025")
        self.assertEqual(normalize_title_key("RRB-NTPC (2024)"), "rrb ntpc 2024")

    def test_same_link_cosmetic_title_difference_collapses(self):
        a = _job("SSC CGL 2025", "https://site.com/ssc-cgl/")
        b = _job("ssc cgl 2025!!", "https://www.site.com/ssc-cgl?utm_source=x")
        self.assertEqual(identity_key(a), identity_key(b))

    def test_different_titles_same_link_are_distinct(self):
        a = _job("SSC CGL 2025 Notification", "https://site.com/ssc-cgl")
        b = _job("SSC CGL 2025 Admit Card", "https://site.com/ssc-cgl")
        self.assertNotEqual(identity_key(a), identity_key(b))


class TestMergeJobs(unittest.TestCase):
    def test_identity_merge_collapses_to_one_entry(self):
        stored = [_job("SSC CGL 2025", "https://site.com/ssc-cgl", created_at=EARLIER, updated_at=EARLIER)]
        result = merge_jobs(stored, [_job("ssc cgl 2025!!", "https://site.com/ssc-cgl/")], NOW)

        self.assertEqual(len(result.jobs), 1)
        self.assertEqual(result.new_jobs, [])
        self.assertEqual(result.updated_count, 1)
        self.assertEqual(result.jobs[0].created_at, EARLIER)
        self.assertEqual(result.jobs[0].updated_at, NOW)

    def test_missing_job_is_retained_unchanged(self):
        old = _job("UPSC CSE 2024 Result", "https://site.com/upsc", created_at=EARLIER, updated_at=EARLIER)
        result = merge_jobs([old], [_job("SSC CHSL 2025", "https://site.com/ssc-chsl")], NOW)

        by_title = {j.title: j for j in result.jobs}
        self.assertEqual(len(result.jobs), 2)
        self.assertEqual(by_title["UPSC CSE 2024 Result"].created_at, EARLIER)
        self.assertEqual(by_title["UPSC CSE 2024 Result"].updated_at, EARLIER)
        self.assertEqual([j.title for j in result.new_jobs], ["SSC CHSL 2025"])

    def test_new_entries_get_timestamps_and_canonical_link(self):
        result = merge_jobs([], [_job("SSC CHSL 2025", "https://www.site.com/ssc-chsl/")], NOW)
        job = result.new_jobs[0]
        self.assertEqual(job.created_at, NOW)
        self.assertEqual(job.updated_at, NOW)
        self.assertEqual(job.publish_date, NOW)
        self.assertEqual(job.canonical_link, "https://site.com/ssc-chsl")

    def test_publish_date_priority(self):
        published = datetime(2025, 2, 20, tzinfo=timezone.utc)
        stored = [_job("Bank PO 2025 Notice", "https://site.com/po", created_at=EARLIER, publish_date=EARLIER)]

        # Incoming date wins over the stored one
        result = merge_jobs(stored, [_job("Bank PO 2025 Notice", "https://site.com/po", publish_date=published)], NOW)
        self.assertEqual(result.jobs[0].publish_date, published)

        # Without an incoming date the stored one is kept
        result = merge_jobs(stored, [_job("Bank PO 2025 Notice", "https://site.com/po")], NOW)
        self.assertEqual(result.jobs[0].publish_date, EARLIER)

    def test_duplicates_within_one_pass_count_once(self):
        incoming = [
            _job("SSC CHSL 2025", "https://site.com/ssc-chsl"),
            _job("SSC CHSL 2025!", "https://site.com/ssc-chsl/"),
        ]
        result = merge_jobs([], incoming, NOW)
        self.assertEqual(len(result.jobs), 1)
        self.assertEqual(len(result.new_jobs), 1)

    def test_new_and_retained_are_disjoint(self):
        stored = [_job("RRB NTPC 2024", "https://site.com/rrb-ntpc", created_at=EARLIER)]
        incoming = [_job("RRB NTPC 2024", "https://site.com/rrb-ntpc"), _job("SSC CHSL 2025", "https://site.com/ssc-chsl")]
        result = merge_jobs(stored, incoming, NOW)

        new_keys = {identity_key(j) for j in result.new_jobs}
        stored_keys = {identity_key(j) for j in stored}
        self.assertFalse(new_keys & stored_keys)
        self.assertTrue(new_keys | stored_keys <= {identity_key(j) for j in result.jobs})


if __name__ == "__main__":
    unittest.main()
