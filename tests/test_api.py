import tempfile
import unittest
from unittest.mock import patch

from api.app import create_app
from models.job import Category, SiteSection
from tests.fakes import SITE, listing_html, make_context

CAT = "https://site.com/category/latest-jobs"


class TestApi(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.context = make_context(self._tmp.name, {
            CAT: listing_html([("SSC CHSL 2025", "https://site.com/ssc-chsl")]),
        })
        self.client = create_app(self.context).test_client()

    def tearDown(self):
        self._tmp.cleanup()

    def test_sync_categories_config_error_is_200(self):
        response = self.client.post("/api/v1/sync-categories")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertFalse(body["success"])
        self.assertIn("category discovery", body["error"])

    @patch("agents.site_sync.time.sleep")
    def test_sync_categories_report(self, mock_sleep):
        self.context.store.save_section(SiteSection(
            url=SITE,
            categories=[
                Category(name="Latest Jobs", link=CAT),
                Category(name="Result", link="https://site.com/category/result"),
            ],
        ))

        response = self.client.post("/api/v1/sync-categories")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["successCount"], 1)
        self.assertEqual(body["failCount"], 1)
        self.assertEqual(body["failures"][0]["category"], "https://site.com/category/result")
        self.assertEqual(body["newJobs"], 1)

    def test_scrape_category(self):
        response = self.client.post("/api/v1/scrape-category", json={
            "url": CAT, "name": "Latest Jobs", "maxPages": 2, "sendEmail": False,
        })

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["categoryUrl"], CAT)
        self.assertEqual(body["categoryName"], "Latest Jobs")
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["newJobsCount"], 1)
        self.assertEqual(body["newJobs"][0]["title"], "SSC CHSL 2025")
        self.assertEqual(self.context.mailer.calls, [])

    def test_scrape_category_requires_url(self):
        response = self.client.post("/api/v1/scrape-category", json={"name": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()["success"])

    def test_scrape_category_failure_is_500(self):
        response = self.client.post("/api/v1/scrape-category", json={"url": "https://site.com/category/missing"})
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.get_json()["success"])

    def test_postlist_read(self):
        self.client.post("/api/v1/scrape-category", json={"url": CAT, "sendEmail": False})

        response = self.client.get("/api/v1/postlist", query_string={"url": "/category/latest-jobs/"})

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["count"], 1)
        job = body["data"][0]["jobs"][0]
        self.assertEqual(job["title"], "SSC CHSL 2025")
        self.assertIsNotNone(job["publishDate"])

    def test_postlist_requires_url(self):
        self.assertEqual(self.client.get("/api/v1/postlist").status_code, 400)

    def test_get_categories_without_site_root(self):
        response = self.client.post("/api/v1/get-categories")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()["success"])

    def test_scrape_complete(self):
        self.context.fetcher.pages["https://site.com/ssc-chsl"] = (
            "<html><body><h1>SSC CHSL 2025</h1><p>Apply online</p></body></html>"
        )

        response = self.client.post("/api/v1/scrape-complete", json={"url": "https://site.com/ssc-chsl"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["action"], "CREATED_MINIMAL")
        self.assertEqual(self.client.post("/api/v1/scrape-complete", json={}).status_code, 400)


if __name__ == "__main__":
    unittest.main()
