import tempfile
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from agents.category_sync import sync_category
from models.errors import PersistenceError
from models.job import CategoryPostList, JobListingEntry
from tests.fakes import FakeMailer, listing_html, make_context
from tools.notifier import Mailer

CAT = "https://site.com/category/latest-jobs"
PAGE_2 = "https://site.com/category/latest-jobs/page/2/"
EARLIER = datetime(2025, 1, 1, tzinfo=timezone.utc)

RRB = ("RRB NTPC 2024", "https://site.com/rrb-ntpc")
SSC = ("SSC CHSL 2025", "https://site.com/ssc-chsl")
UPSC = ("UPSC CSE 2025 Notification", "https://site.com/upsc-cse")


class CategorySyncTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def context(self, pages, **kwargs):
        return make_context(self.tmpdir, pages, **kwargs)

    def stored_titles(self, context):
        post_list = context.store.find_post_list(CAT)
        return sorted(j.title for j in post_list.jobs) if post_list else []


class TestSyncCategory(CategorySyncTestCase):
    def test_end_to_end_new_job_detection(self):
        context = self.context({CAT: listing_html([RRB, SSC])})
        context.store.upsert_post_list(CategoryPostList(
            url=CAT,
            section="/category/latest-jobs",
            category_name="Latest Jobs",
            jobs=[JobListingEntry(title=RRB[0], link=RRB[1], created_at=EARLIER, updated_at=EARLIER)],
        ))

        result = sync_category(context, CAT, "Latest Jobs")

        self.assertTrue(result.success)
        self.assertFalse(result.is_new_post_list)
        self.assertEqual([j.title for j in result.new_jobs], ["SSC CHSL 2025"])
        self.assertEqual(result.new_jobs_count, 1)
        self.assertEqual(result.total_in_db, 2)
        self.assertEqual(self.stored_titles(context), ["RRB NTPC 2024", "SSC CHSL 2025"])

        mails = context.mailer.calls
        self.assertEqual(len(mails), 1)
        jobs, name, url = mails[0]
        self.assertEqual([j.title for j in jobs], ["SSC CHSL 2025"])
        self.assertEqual((name, url), ("Latest Jobs", CAT))

        rrb = next(j for j in context.store.find_post_list(CAT).jobs if j.title == RRB[0])
        self.assertEqual(rrb.created_at, EARLIER)
        self.assertGreater(rrb.updated_at, EARLIER)

    def test_second_run_is_idempotent(self):
        context = self.context({CAT: listing_html([RRB, SSC])})

        first = sync_category(context, CAT, "Latest Jobs")
        second = sync_category(context, CAT, "Latest Jobs")

        self.assertTrue(first.is_new_post_list)
        self.assertEqual(first.new_jobs_count, 2)
        self.assertEqual(second.new_jobs, [])
        self.assertFalse(second.is_new_post_list)
        self.assertEqual(len(context.store.find_post_list(CAT).jobs), 2)
        self.assertEqual(len(context.mailer.calls), 1)

    def test_first_sync_sends_one_batched_email(self):
        jobs = [(f"State Govt Recruitment {i:02d}", f"https://site.com/post-{i}") for i in range(25)]
        context = self.context({CAT: listing_html(jobs)})

        result = sync_category(context, CAT)

        self.assertEqual(result.new_jobs_count, 25)
        self.assertEqual(len(context.mailer.calls), 1)
        self.assertEqual(len(context.mailer.calls[0][0]), 25)

    def test_job_scrolled_off_is_retained(self):
        context = self.context({CAT: listing_html([RRB, UPSC])})
        sync_category(context, CAT)
        created = {j.title: j.created_at for j in context.store.find_post_list(CAT).jobs}

        context.fetcher.pages[CAT] = listing_html([UPSC])
        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        stored = {j.title: j for j in context.store.find_post_list(CAT).jobs}
        self.assertIn(RRB[0], stored)
        self.assertEqual(stored[RRB[0]].created_at, created[RRB[0]])

    def test_fetch_failure_aborts_without_side_effects(self):
        context = self.context({})

        result = sync_category(context, CAT, "Latest Jobs")

        self.assertFalse(result.success)
        self.assertIn("404", result.error)
        self.assertIsNone(context.store.find_post_list(CAT))
        self.assertEqual(context.mailer.calls, [])

    def test_empty_listing_is_a_valid_result(self):
        context = self.context({CAT: "<html><body><p>No posts yet</p></body></html>"})

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        self.assertEqual(result.count, 0)
        self.assertIsNotNone(context.store.find_post_list(CAT))

    def test_notification_failure_does_not_fail_sync(self):
        context = self.context({CAT: listing_html([SSC])}, mailer=FakeMailer(fail=True))

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        self.assertEqual(self.stored_titles(context), ["SSC CHSL 2025"])

    @patch("tools.notifier.smtplib.SMTP")
    def test_subscriber_lookup_failure_does_not_fail_sync(self, mock_smtp):
        mailer = Mailer(
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="bot@example.com",
            smtp_password="secret",
            subscriber_source=MagicMock(side_effect=PersistenceError("database is locked")),
        )
        context = self.context({CAT: listing_html([SSC])}, mailer=mailer)

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        self.assertEqual([j.title for j in result.new_jobs], ["SSC CHSL 2025"])
        self.assertEqual(self.stored_titles(context), ["SSC CHSL 2025"])
        mock_smtp.assert_not_called()

    def test_persistence_failure_is_reported(self):
        context = self.context({CAT: listing_html([SSC])})

        with patch.object(context.store, "upsert_post_list", side_effect=PersistenceError("database is locked")):
            result = sync_category(context, CAT)

        self.assertFalse(result.success)
        self.assertIn("database is locked", result.error)
        self.assertEqual(context.mailer.calls, [])

    def test_send_email_false_skips_notification(self):
        context = self.context({CAT: listing_html([SSC])})
        sync_category(context, CAT, send_email=False)
        self.assertEqual(context.mailer.calls, [])

    def test_url_is_canonicalized_and_name_kept(self):
        context = self.context({CAT: listing_html([SSC])})
        sync_category(context, "https://www.site.com/category/latest-jobs/?utm_source=feed", "Latest Jobs")
        result = sync_category(context, CAT)

        self.assertEqual(result.category_url, CAT)
        self.assertEqual(result.category_name, "Latest Jobs")
        self.assertEqual(context.store.find_post_list(CAT).section, "/category/latest-jobs")

    def test_invalid_url(self):
        context = self.context({})
        result = sync_category(context, "not a url")
        self.assertFalse(result.success)
        self.assertEqual(context.fetcher.calls, [])


class TestPagination(CategorySyncTestCase):
    def test_follows_next_links(self):
        context = self.context({
            CAT: listing_html([RRB], next_link=PAGE_2),
            PAGE_2: listing_html([SSC]),
        })

        result = sync_category(context, CAT)

        self.assertEqual(result.pages_visited, 2)
        self.assertEqual(self.stored_titles(context), ["RRB NTPC 2024", "SSC CHSL 2025"])

    def test_later_page_failure_is_skipped(self):
        context = self.context({CAT: listing_html([RRB], next_link=PAGE_2)})

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        self.assertEqual(result.pages_visited, 1)
        self.assertEqual(self.stored_titles(context), ["RRB NTPC 2024"])

    def test_max_pages_caps_fetches(self):
        context = self.context({
            CAT: listing_html([RRB], next_link=PAGE_2),
            PAGE_2: listing_html([SSC]),
        })

        sync_category(context, CAT, max_pages=1)

        self.assertEqual(context.fetcher.calls, [CAT])


class TestDetailScrape(CategorySyncTestCase):
    def test_new_jobs_get_detail_posts(self):
        detail = "<html><head><title>SSC CHSL 2025</title></head><body><h1>SSC CHSL 2025</h1><p>Apply now</p></body></html>"
        context = self.context({CAT: listing_html([SSC]), SSC[1]: detail}, scrape_details=True)

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        post = context.store.find_detail_post(canonical_url="https://site.com/ssc-chsl")
        self.assertIsNotNone(post)
        self.assertEqual(post.recruitment["title"], "SSC CHSL 2025")

    def test_detail_failure_does_not_fail_category(self):
        context = self.context({CAT: listing_html([SSC])}, scrape_details=True)

        result = sync_category(context, CAT)

        self.assertTrue(result.success)
        self.assertEqual(result.new_jobs_count, 1)


if __name__ == "__main__":
    unittest.main()
