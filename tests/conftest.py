import os
import tempfile

_scratch = tempfile.mkdtemp(prefix="registration-tests-")
os.environ.setdefault("REGISTRATION_DB", os.path.join(_scratch, "import.db"))
os.environ.setdefault("ATTACHMENT_DIR", os.path.join(_scratch, "attachments"))
os.environ.setdefault("REGISTRATION_SETTINGS", os.path.join(_scratch, "settings.json"))

import pytest  # noqa: E402

import database  # noqa: E402
import settings_store  # noqa: E402
import storage  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DATABASE", str(tmp_path / "registrations.db"))
    monkeypatch.setattr(storage, "ATTACHMENT_DIR", str(tmp_path / "attachments"))
    monkeypatch.setattr(settings_store, "SETTINGS_FILE", str(tmp_path / "app_settings.json"))
    database._subscribers.clear()
    database.init_db()
    yield tmp_path
    database._subscribers.clear()
