import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # Root of the static site serving data/organizations.csv and friends
    base_url: str = "http://localhost:8000/account-group-uxr/"
    # Origin and path used when building participant share links
    origin: str = "http://localhost:8000"
    app_path: str = "/account-group-uxr/"
    storage_path: str = "uxr_local_storage.json"
    session_path: str = "uxr_session_storage.json"
    participant_dir: str = "data/participants"
    default_scenario: str = "enterprise"


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        base_url=os.getenv("UXR_BASE_URL", "").strip() or defaults.base_url,
        origin=os.getenv("UXR_ORIGIN", "").strip().rstrip("/") or defaults.origin,
        app_path=os.getenv("UXR_APP_PATH", "").strip() or defaults.app_path,
        storage_path=os.getenv("UXR_STORAGE_PATH", "").strip() or defaults.storage_path,
        session_path=os.getenv("UXR_SESSION_PATH", "").strip() or defaults.session_path,
        participant_dir=(
            os.getenv("UXR_PARTICIPANT_DIR", "").strip() or defaults.participant_dir
        ),
        default_scenario=(
            os.getenv("UXR_DEFAULT_SCENARIO", "").strip() or defaults.default_scenario
        ),
    )
