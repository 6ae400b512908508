import tempfile
import unittest
from pathlib import Path

import httpx

from goblin.client import GoblinClient
from goblin.errors import TransferError, TransferHTTPError
from goblin.transfer import HttpTransfer, resolve_observed_version


def _client(handler) -> GoblinClient:
    client = GoblinClient(timeout_s=5.0)
    client._http = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)  # type: ignore[attr-defined]
    return client


class TestObservedVersion(unittest.TestCase):
    def test_header_wins(self) -> None:
        v = resolve_observed_version(
            header_version="v3.0.1", filename="tool-v3.0.0.zip", package_name="tool", declared_version="latest"
        )
        self.assertEqual(v, "v3.0.1")

    def test_filename_is_second(self) -> None:
        v = resolve_observed_version(
            header_version=None, filename="tool-v3.0.0.zip", package_name="tool", declared_version="latest"
        )
        self.assertEqual(v, "v3.0.0")

    def test_declared_version_is_last_resort(self) -> None:
        v = resolve_observed_version(
            header_version=" ", filename="tool_linux_amd64", package_name="tool", declared_version="latest"
        )
        self.assertEqual(v, "latest")


class TestHttpTransfer(unittest.TestCase):
    def test_fetch_writes_body_and_reads_version_header(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/dl/tool_linux_amd64":
                return httpx.Response(302, headers={"location": "https://cdn.example.invalid/blob"})
            return httpx.Response(200, content=b"\x7fELF-binary", headers={"X-Version": "v1.4.2"})

        with tempfile.TemporaryDirectory() as td, _client(handler) as client:
            dest = Path(td) / "tool_linux_amd64"
            version = HttpTransfer(client).fetch(
                "https://example.invalid/dl/tool_linux_amd64",
                dest,
                package_name="tool",
                declared_version="latest",
                filename="tool_linux_amd64",
            )
            self.assertEqual(version, "v1.4.2")
            self.assertEqual(dest.read_bytes(), b"\x7fELF-binary")

    def test_fetch_falls_back_to_filename(self) -> None:
        with tempfile.TemporaryDirectory() as td, _client(lambda r: httpx.Response(200, content=b"x")) as client:
            version = HttpTransfer(client).fetch(
                "https://example.invalid/tool-v0.9.0.tar.gz",
                Path(td) / "tool-v0.9.0.tar.gz",
                package_name="tool",
                declared_version="v0.9.0",
                filename="tool-v0.9.0.tar.gz",
            )
            self.assertEqual(version, "v0.9.0")

    def test_http_error_raises_without_creating_file(self) -> None:
        with tempfile.TemporaryDirectory() as td, _client(lambda r: httpx.Response(404, content=b"nope")) as client:
            dest = Path(td) / "tool"
            with self.assertRaises(TransferHTTPError) as ctx:
                HttpTransfer(client).fetch(
                    "https://example.invalid/tool",
                    dest,
                    package_name="tool",
                    declared_version="latest",
                    filename="tool",
                )
            self.assertEqual(ctx.exception.status_code, 404)
            self.assertFalse(dest.exists())

    def test_malformed_url_is_transfer_error(self) -> None:
        with tempfile.TemporaryDirectory() as td, _client(lambda r: httpx.Response(200, content=b"x")) as client:
            dest = Path(td) / "tool"
            with self.assertRaises(TransferError):
                client.download("http://[::1bad", dest)
            with self.assertRaises(TransferError):
                client.get_bytes("http://[::1bad")
            self.assertFalse(dest.exists())

    def test_network_error_is_transfer_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with self.assertRaises(TransferError):
                client.get_bytes("https://example.invalid/sources.yaml")


if __name__ == "__main__":
    unittest.main()
