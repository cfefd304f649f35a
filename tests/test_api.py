import json
import tempfile
from pathlib import Path
from unittest import TestCase, mock

import requests

from fakes import FakeResponse, FakeTransport
from pages import API_BASE, LOGGED_IN_PREFIX, LOGIN_URL, START_PAGE
from studip.api import API
from studip.config import Config
from studip.errors import DecodeError, StatusCodeError

TREE_URL = API_BASE + "studip-client-core/documenttree/"


def make_api(*responses):
    config = Config(
        login_url=LOGIN_URL,
        logged_in_url_prefix=LOGGED_IN_PREFIX,
        api_base_url=API_BASE,
    )
    transport = FakeTransport(*responses)
    return API(transport=transport, config=config), transport


class DocumentTreeTest(TestCase):
    def test_document_tree(self):
        body = json.dumps(
            [{"semester_id": "s1", "title": "WS 2019/20", "courses": []}]
        )
        api, transport = make_api(FakeResponse(TREE_URL, text=body))
        tree = api.document_tree()

        self.assertEqual([s.semester_id for s in tree], ["s1"])
        [request] = transport.requests
        self.assertEqual(request["method"], "GET")
        self.assertEqual(request["url"], TREE_URL)
        self.assertEqual(request["headers"]["User-Agent"], "StudIP Python Library")

    def test_status_code(self):
        response = FakeResponse(TREE_URL, status_code=401, text="Unauthorized")
        api, _ = make_api(response)
        with self.assertRaises(StatusCodeError) as cm:
            api.document_tree()
        self.assertEqual(cm.exception.code, 401)
        self.assertEqual(str(cm.exception), "Invalid status code: 401")
        self.assertTrue(response.closed)

    def test_invalid_body(self):
        for body in ["", "<html>Login</html>", "[{"]:
            with self.subTest(body=body):
                api, _ = make_api(FakeResponse(TREE_URL, text=body))
                with self.assertRaises(DecodeError) as cm:
                    api.document_tree()
                self.assertIsInstance(cm.exception, ValueError)
                self.assertIsNotNone(cm.exception.__cause__)

    def test_wrong_shape(self):
        api, _ = make_api(FakeResponse(TREE_URL, text='{"error": "nope"}'))
        with self.assertRaises(DecodeError):
            api.document_tree()


class GetFileTest(TestCase):
    def test_get_file(self):
        response = FakeResponse(API_BASE + "file/abc/content", content=b"%PDF-1.4")
        api, transport = make_api(response)
        with api.get_file("abc") as resp:
            self.assertEqual(b"".join(resp.iter_content(2)), b"%PDF-1.4")
        self.assertTrue(response.closed)

        [request] = transport.requests
        self.assertEqual(request["url"], API_BASE + "file/abc/content")
        self.assertTrue(request["stream"])

    def test_not_found(self):
        response = FakeResponse(API_BASE + "file/invalid/content", status_code=404)
        api, _ = make_api(response)
        with self.assertRaises(StatusCodeError) as cm:
            api.get_file("invalid")
        self.assertEqual(cm.exception.code, 404)
        self.assertTrue(response.closed)

    def test_file_id_stays_in_path(self):
        response = FakeResponse(API_BASE + "file/a%2Fb%3Fc%23d/content")
        api, transport = make_api(response)
        with api.get_file("a/b?c#d"):
            pass
        self.assertEqual(
            transport.requests[0]["url"], API_BASE + "file/a%2Fb%3Fc%23d/content"
        )

    def test_transport_error(self):
        error = requests.Timeout("read timed out")
        api, _ = make_api(error)
        with self.assertRaises(requests.Timeout):
            api.get_file("abc")


class FailingResponse(FakeResponse):
    def iter_content(self, chunk_size=1):
        yield b"partial"
        raise requests.ConnectionError("connection reset")


class SaveFileTest(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.dir = Path(self.tmp.name)

    def test_save_file(self):
        response = FakeResponse(
            API_BASE + "file/abc/content",
            chunks=[b"a" * 1024, b"b" * 100],
            headers={"content-length": "1124"},
        )
        api, _ = make_api(response)
        target = self.dir / "course" / "slides.pdf"

        written = api.save_file("abc", target)

        self.assertEqual(written, 1124)
        self.assertEqual(target.read_bytes(), b"a" * 1024 + b"b" * 100)
        self.assertFalse((self.dir / "course" / "slides.pdf.temp").exists())
        self.assertTrue(response.closed)

    def test_failed_copy(self):
        response = FailingResponse(API_BASE + "file/abc/content")
        api, _ = make_api(response)
        target = self.dir / "slides.pdf"

        with self.assertRaises(requests.ConnectionError):
            api.save_file("abc", target)

        self.assertFalse(target.exists())
        self.assertFalse((self.dir / "slides.pdf.temp").exists())
        self.assertTrue(response.closed)

    def test_unusable_target_directory(self):
        response = FakeResponse(API_BASE + "file/abc/content", content=b"data")
        api, _ = make_api(response)
        blocker = self.dir / "course"
        blocker.write_text("not a directory")

        with mock.patch("studip.api.tqdm") as progress:
            with self.assertRaises(OSError):
                api.save_file("abc", blocker / "slides.pdf")

        self.assertEqual(
            progress.return_value.close.call_count, progress.call_count
        )
        self.assertTrue(response.closed)

    def test_not_found(self):
        api, _ = make_api(
            FakeResponse(API_BASE + "file/invalid/content", status_code=404)
        )
        target = self.dir / "missing.pdf"
        with self.assertRaises(StatusCodeError):
            api.save_file("invalid", target)
        self.assertFalse(target.exists())


class LoginTest(TestCase):
    def test_login_uses_same_transport(self):
        api, transport = make_api(
            FakeResponse(START_PAGE),
            FakeResponse(TREE_URL, text="[]"),
        )
        api.login("jdoe", "secret")
        self.assertEqual(api.document_tree(), [])
        self.assertEqual(
            [r["url"] for r in transport.requests], [LOGIN_URL, TREE_URL]
        )
