"""Configuration loading for helpline.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (HELP_API_ENDPOINT, USE_MOCK_API, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ENDPOINT = "https://api.example.com/help-request"
DEFAULT_SESSIONS_DIR = Path("logs")
DEFAULT_TIMEOUT = 30.0
MOCK_DELAY_SECONDS = 0.5

AUTH_SCHEMES = ("bearer", "service-key")
PAYLOAD_MODES = ("ticket", "raw")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("true", "1", "yes")


@dataclass
class Config:
    api_endpoint: str = DEFAULT_ENDPOINT
    api_secret: str = ""
    auth_scheme: str = "bearer"  # "bearer" | "service-key"
    payload_mode: str = "ticket"  # "ticket" | "raw"
    use_mock_api: bool = False
    mock_delay: float = MOCK_DELAY_SECONDS
    timeout: float = DEFAULT_TIMEOUT
    sessions_dir: Path = DEFAULT_SESSIONS_DIR
    log_level: str = "INFO"
    activity_log_path: Path | None = None

    @classmethod
    def load(cls) -> Config:
        activity_log = os.getenv("HELPLINE_LOG_PATH")
        return cls(
            api_endpoint=os.getenv("HELP_API_ENDPOINT", DEFAULT_ENDPOINT),
            api_secret=os.getenv("HELP_API_SECRET") or os.getenv("HELP_API_JWT_SECRET", ""),
            auth_scheme=os.getenv("HELP_API_AUTH_SCHEME", "bearer").strip().lower(),
            payload_mode=os.getenv("HELP_API_PAYLOAD", "ticket").strip().lower(),
            use_mock_api=_env_flag("USE_MOCK_API"),
            timeout=float(os.getenv("HELP_API_TIMEOUT", str(DEFAULT_TIMEOUT))),
            sessions_dir=Path(os.getenv("HELPLINE_SESSIONS_DIR", str(DEFAULT_SESSIONS_DIR))),
            log_level=os.getenv("HELPLINE_LOG_LEVEL", "INFO").upper(),
            activity_log_path=Path(activity_log) if activity_log else None,
        )

    def validate(self) -> list[str]:
        """Return a list of config issues that would break ticket submission."""
        issues = []
        if self.auth_scheme not in AUTH_SCHEMES:
            issues.append(
                f"Unknown auth scheme '{self.auth_scheme}' (HELP_API_AUTH_SCHEME): "
                f"expected one of {', '.join(AUTH_SCHEMES)}"
            )
        if self.payload_mode not in PAYLOAD_MODES:
            issues.append(
                f"Unknown payload mode '{self.payload_mode}' (HELP_API_PAYLOAD): "
                f"expected one of {', '.join(PAYLOAD_MODES)}"
            )
        if not self.use_mock_api:
            if not self.api_endpoint:
                issues.append("API endpoint not set (HELP_API_ENDPOINT)")
            if not self.api_secret:
                issues.append("API secret not set (HELP_API_SECRET)")
        return issues
