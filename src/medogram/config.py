"""
Client configuration — backend origins and the fixed request timeout.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel

DEFAULT_BASE_URL = "https://api.medogram.ir"
DEFAULT_LOCAL_URL = "http://127.0.0.1:8000"
REQUEST_TIMEOUT_S = 10.0

BASE_URL_ENV = "MEDOGRAM_API_BASE_URL"
LOCAL_URL_ENV = "MEDOGRAM_LOCAL_API_URL"


class ClientConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL    # "primary" origin: auth, profile, visits, payments
    local_url: str = DEFAULT_LOCAL_URL  # "local" origin: chat and prediction

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Optional[str]) -> "ClientConfig":
        """Build a config from the environment. Non-empty keyword overrides win."""
        env = os.environ if environ is None else environ
        values = {
            "base_url": env.get(BASE_URL_ENV) or DEFAULT_BASE_URL,
            "local_url": env.get(LOCAL_URL_ENV) or DEFAULT_LOCAL_URL,
        }
        values.update({k: v for k, v in overrides.items() if v})
        return cls(**values)
