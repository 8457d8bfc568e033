import json
import logging
import os


logger = logging.getLogger(__name__)

SETTINGS_FILE = os.getenv("REGISTRATION_SETTINGS", "app_settings.json")


DEFAULT_SETTINGS = {
    "email_domain": "dematic.com",
    "import_row_delay": 0.5,
    "message_seconds": 3,
    "error_seconds": 5,
    "min_password_length": 6,
    "public_base_url": "",
    "flask_port": 5000,
    # Extra scanner fixes on top of the built-in AZERTY table.
    "scanner_char_map": {},
    "scanner_patterns": [],
    "code_stopwords": ["spray", "ml", "gr", "kit"],
}


def load_settings():
    settings = DEFAULT_SETTINGS.copy()
    if os.path.exists(SETTINGS_FILE):
        try:
            with open(SETTINGS_FILE, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
                if isinstance(data, dict):
                    settings.update(data)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", SETTINGS_FILE, exc)
    return settings


def save_settings(settings):
    merged = DEFAULT_SETTINGS.copy()
    merged.update(settings or {})
    with open(SETTINGS_FILE, "w", encoding="utf-8") as file_obj:
        json.dump(merged, file_obj, indent=2, ensure_ascii=False)
    return merged


def scanner_patterns(settings):
    """Return the configured pattern fixes as ``(wrong, correct)`` pairs.

    Entries may be stored as ``{"wrong": ..., "correct": ...}`` objects or as
    two-element lists. Anything else is dropped with a warning.
    """
    pairs = []
    for entry in settings.get("scanner_patterns") or []:
        if isinstance(entry, dict) and entry.get("wrong"):
            pairs.append((str(entry["wrong"]), str(entry.get("correct", ""))))
        elif isinstance(entry, (list, tuple)) and len(entry) == 2 and entry[0]:
            pairs.append((str(entry[0]), str(entry[1])))
        else:
            logger.warning("Skipping invalid scanner pattern: %r", entry)
    return pairs
