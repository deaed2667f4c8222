"""Unit tests for resonansi.services.storage backends."""

import tempfile
import unittest
from pathlib import Path

from resonansi.core.config import Settings
from resonansi.core.errors import NotFoundError, ValidationError
from resonansi.models import UploadedFile
from resonansi.services.storage import (
    ATTACHMENT,
    THUMBNAIL,
    EmbeddedStorage,
    ExternalStorage,
    FilesystemStorage,
    IncomingFile,
    get_storage_backend,
    make_stored_name,
    sanitize_filename,
)


def _incoming(field: str = ATTACHMENT, name: str = "report.pdf", data: bytes = b"%PDF-1.4") -> IncomingFile:
    content_type = "application/pdf" if field == ATTACHMENT else "image/png"
    return IncomingFile(field=field, original_name=name, content_type=content_type, size=len(data), data=data)


class TestNames(unittest.TestCase):
    def test_sanitize_strips_directories(self) -> None:
        self.assertEqual(sanitize_filename("../../etc/passwd"), "passwd")
        self.assertEqual(sanitize_filename("C:\\Users\\me\\cv.docx"), "cv.docx")

    def test_sanitize_replaces_unsafe_characters(self) -> None:
        self.assertEqual(sanitize_filename("my report (final).pdf"), "my_report_final_.pdf")

    def test_sanitize_never_empty(self) -> None:
        self.assertEqual(sanitize_filename("..."), "file")

    def test_stored_names_are_unique(self) -> None:
        names = {make_stored_name("a.pdf") for _ in range(50)}
        self.assertEqual(len(names), 50)
        self.assertRegex(next(iter(names)), r"^\d+-[0-9a-f]{16}-a\.pdf$")


class TestFilesystemStorage(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.backend = FilesystemStorage(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _record(self, content_ref: str | None, image_ref: str | None = None) -> UploadedFile:
        return UploadedFile(
            id=1,
            storage_backend="filesystem",
            content_ref=content_ref,
            image_ref=image_ref,
            image_mimetype="image/png" if image_ref else None,
        )

    def test_store_writes_file_under_root(self) -> None:
        stored = self.backend.store(_incoming(data=b"hello"))
        self.assertIsNone(stored.blob)
        self.assertEqual((self.root / stored.ref).read_bytes(), b"hello")
        self.assertEqual(stored.ref, stored.stored_name)

    def test_thumbnail_goes_to_images_dir(self) -> None:
        stored = self.backend.store(_incoming(THUMBNAIL, "cover.png", b"png"))
        self.assertTrue(stored.ref.startswith("images/"))
        self.assertTrue((self.root / stored.ref).is_file())

    def test_no_partial_files_left(self) -> None:
        self.backend.store(_incoming())
        self.assertEqual(list(self.root.glob(".partial-*")), [])

    def test_open_returns_path(self) -> None:
        stored = self.backend.store(_incoming(data=b"abc"))
        content = self.backend.open(self._record(stored.ref))
        self.assertEqual(content.path.read_bytes(), b"abc")

    def test_open_missing_file_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.backend.open(self._record("gone.pdf"))

    def test_open_rejects_path_escape(self) -> None:
        with self.assertRaises(NotFoundError):
            self.backend.open(self._record("../outside.pdf"))

    def test_delete_removes_attachment_and_thumbnail(self) -> None:
        doc = self.backend.store(_incoming())
        img = self.backend.store(_incoming(THUMBNAIL, "c.png", b"png"))
        self.backend.delete(self._record(doc.ref, img.ref))
        self.assertFalse((self.root / doc.ref).exists())
        self.assertFalse((self.root / img.ref).exists())

    def test_delete_tolerates_missing_content(self) -> None:
        self.backend.delete(self._record("never-written.pdf"))

    def test_discard_removes_stored_content(self) -> None:
        stored = self.backend.store(_incoming())
        self.backend.discard(stored)
        self.assertFalse((self.root / stored.ref).exists())

    def test_store_without_bytes_rejected(self) -> None:
        incoming = _incoming()
        incoming.data = None
        with self.assertRaises(ValidationError):
            self.backend.store(incoming)


class TestEmbeddedStorage(unittest.TestCase):
    def test_store_keeps_bytes_in_blob(self) -> None:
        stored = EmbeddedStorage().store(_incoming(data=b"inline"))
        self.assertEqual(stored.blob, b"inline")
        self.assertIsNone(stored.ref)

    def test_open_returns_bytes(self) -> None:
        record = UploadedFile(storage_backend="embedded", content_blob=b"abc", image_blob=b"img")
        backend = EmbeddedStorage()
        self.assertEqual(backend.open(record).data, b"abc")
        self.assertEqual(backend.open(record, THUMBNAIL).data, b"img")

    def test_open_without_blob_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            EmbeddedStorage().open(UploadedFile(storage_backend="embedded"))


class TestExternalStorage(unittest.TestCase):
    def test_store_keeps_url(self) -> None:
        incoming = IncomingFile(
            field=ATTACHMENT,
            original_name="paper.pdf",
            content_type="application/pdf",
            size=10,
            url="https://cdn.example.com/paper.pdf",
        )
        stored = ExternalStorage().store(incoming)
        self.assertEqual(stored.ref, "https://cdn.example.com/paper.pdf")

    def test_non_http_url_rejected(self) -> None:
        incoming = IncomingFile(
            field=ATTACHMENT,
            original_name="paper.pdf",
            content_type="application/pdf",
            size=10,
            url="file:///etc/passwd",
        )
        with self.assertRaises(ValidationError):
            ExternalStorage().store(incoming)

    def test_open_returns_url(self) -> None:
        record = UploadedFile(storage_backend="external", content_ref="https://cdn.example.com/x.pdf")
        self.assertEqual(ExternalStorage().open(record).url, "https://cdn.example.com/x.pdf")


class TestBackendSelection(unittest.TestCase):
    def test_factory_follows_setting(self) -> None:
        for name, cls in (
            ("filesystem", FilesystemStorage),
            ("embedded", EmbeddedStorage),
            ("external", ExternalStorage),
        ):
            settings = Settings(DATABASE_URL="sqlite://", STORAGE_BACKEND=name)
            backend = get_storage_backend(settings)
            self.assertIsInstance(backend, cls)
            self.assertEqual(backend.name, name)


if __name__ == "__main__":
    unittest.main()
