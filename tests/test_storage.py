import os

import storage


def test_upload_and_delete_attachment():
    result = storage.upload_attachment("7", "Handleiding.PDF", b"%PDF-1.4")
    assert result.error is None
    url = result.data
    assert url.startswith("/attachments/product-7-")
    assert url.endswith(".pdf")

    path = storage.attachment_path(url[len(storage.ATTACHMENT_URL_PREFIX):])
    with open(path, "rb") as file_obj:
        assert file_obj.read() == b"%PDF-1.4"

    assert storage.delete_attachment(url).error is None
    assert not os.path.exists(path)
    # Deleting twice only logs a warning.
    assert storage.delete_attachment(url).error is None


def test_unsupported_extension():
    result = storage.upload_attachment("1", "script.exe", b"MZ")
    assert result.data is None
    assert result.error == "Bestandstype .exe wordt niet ondersteund"


def test_attachment_path_rejects_nested_names():
    assert storage.attachment_path("../secret.txt") is None
    assert storage.attachment_path("") is None
    assert storage.attachment_path("a.pdf") == os.path.join(storage.ATTACHMENT_DIR, "a.pdf")


def test_foreign_urls_are_ignored():
    assert storage.delete_attachment("https://example.com/a.pdf") == storage.DbResult(None, None)
    assert storage.delete_attachment(None) == storage.DbResult(None, None)


def test_safe_filename():
    assert storage.safe_filename("mijn bestand (1).pdf") == "mijn_bestand_1_.pdf"
    assert storage.safe_filename("...") == "bestand"
