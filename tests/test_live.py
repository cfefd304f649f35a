import os
import tempfile
import unittest
from pathlib import Path

import requests

from studip.api import API
from studip.errors import StatusCodeError

username = os.environ.get("STUDIP_USERNAME")
password = os.environ.get("STUDIP_PASSWORD")
file_id = os.environ.get("STUDIP_FILEID")


@unittest.skipUnless(username and password, "STUDIP_USERNAME/STUDIP_PASSWORD not set")
class LiveTest(unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.transport = requests.Session()
        self.addCleanup(self.transport.close)
        self.api = API(transport=self.transport)
        self.api.login(username, password)

    def test_login_twice(self):
        self.api.login(username, password)

    def test_document_tree(self):
        tree = self.api.document_tree()
        self.assertTrue(tree, "Invalid or empty tree returned")

    @unittest.skipUnless(file_id, "STUDIP_FILEID not set")
    def test_get_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            written = self.api.save_file(file_id, Path(tmp) / "studip")
        self.assertGreaterEqual(written, 128, "Invalid file content")

    def test_get_invalid_file(self):
        with self.assertRaises(StatusCodeError) as cm:
            self.api.get_file("invalid")
        self.assertEqual(cm.exception.code, 404)
