"""Write service-account credential files from environment variables.

Hosts that cannot ship credential files (containers, PaaS) can put the JSON
content into env vars instead; this module writes it to the configured paths
before the connectors start.

    GA4_CREDENTIALS_JSON            -> settings.ga4_credentials_path
    GOOGLE_SHEETS_CREDENTIALS_JSON  -> settings.google_sheets_credentials_path

GOOGLE_SA_JSON (one shared service account) fills any file still missing.
"""
import json
import os
from typing import List, Optional

from funnel_sync.config import Settings, get_settings
from funnel_sync.utils.logger import log

SHARED_SA_VAR = "GOOGLE_SA_JSON"


def _is_json(value: str) -> bool:
    """Check if a string looks like JSON content (not a file path)."""
    stripped = value.strip()
    return stripped.startswith("{") and stripped.endswith("}")


def bootstrap_credentials(settings: Optional[Settings] = None) -> List[str]:
    """Write credential JSON files from env vars if the files don't exist.

    Returns:
        Paths written during this call
    """
    settings = settings or get_settings()
    targets = [
        ("GA4_CREDENTIALS_JSON", settings.ga4_credentials_path),
        ("GOOGLE_SHEETS_CREDENTIALS_JSON", settings.google_sheets_credentials_path),
    ]

    written = []
    for env_var, file_path in targets:
        if not file_path or os.path.exists(file_path):
            continue

        json_str = None
        source_var = None
        for var in (env_var, SHARED_SA_VAR):
            value = os.environ.get(var, "")
            if value and _is_json(value):
                json_str = value
                source_var = var
                break

        if not json_str:
            continue

        try:
            json.loads(json_str)
        except json.JSONDecodeError:
            log.error(f"{source_var} is not valid JSON, skipping")
            continue

        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, "w") as f:
            f.write(json_str)
        log.info(f"Wrote {file_path} from {source_var}")
        written.append(file_path)

    return written
