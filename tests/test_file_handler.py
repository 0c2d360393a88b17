import os
import tempfile
import unittest

from tools.file_handler import load_site_config, save_to_json


class TestFileHandler(unittest.TestCase):
    def test_load_site_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "sites.yaml")
            with open(path, "w") as f:
                f.write(
                    "site:\n"
                    "  url: www.site.com\n"
                    "  categories:\n"
                    "    - name: Latest Jobs\n"
                    "      link: https://site.com/category/latest-jobs/\n"
                    "    - name: Broken entry\n"
                    "subscribers:\n"
                    "  - reader@example.com\n"
                    "  - email: ops@example.com\n"
                    "    name: Ops\n"
                )

            config = load_site_config(path)

        self.assertEqual(config["site_url"], "www.site.com")
        self.assertEqual(config["categories"], [{"name": "Latest Jobs", "link": "https://site.com/category/latest-jobs/"}])
        self.assertEqual([s["email"] for s in config["subscribers"]], ["reader@example.com", "ops@example.com"])

    def test_save_to_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = save_to_json({"success": True}, os.path.join(tmpdir, "out"), "report.json")
            with open(path) as f:
                self.assertEqual(f.read().strip(), '{\n  "success": true\n}')


if __name__ == "__main__":
    unittest.main()
