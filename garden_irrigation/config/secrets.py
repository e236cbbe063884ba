import os
from typing import Optional

SECRET_PREFIX = "GARDEN_IRRIGATION_"


def get_secret(key: str, default: Optional[str] = None) -> Optional[str]:
    # Secrets are only read from environment variables, never from the run configuration
    return os.environ.get(f"{SECRET_PREFIX}{key.upper()}", default)
