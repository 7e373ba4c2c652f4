from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    response_unserializer: str = os.getenv("REQUEST_UNSERIALIZER", "json")
    check_response_status: bool = _flag("REQUEST_CHECK_STATUS", "true")
    request_async: bool = _flag("REQUEST_ASYNC", "true")
    # false restores the legacy selection where urlencoded bodies are never built
    urlencoded_bodies: bool = _flag("REQUEST_URLENCODED_BODIES", "true")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "45"))
    user_agent: str = os.getenv("HTTP_USER_AGENT", "promised-request/0.1")


settings = Settings()
