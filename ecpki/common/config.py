"""Run configuration from the environment (optionally a .env file).

Recognised variables:
- ECPKI_OUTPUT_DIR: directory the six PEM files are written to
- ECPKI_CURVE: P-256 (default), P-384 or P-521
- ECPKI_RANDOM_SERIALS: "1"/"true"/"yes" to draw random serial numbers

Explicit keyword overrides (e.g. from the command line) win over the
environment; anything left unset keeps the BootstrapConfig default.
"""

import os
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .models import BootstrapConfig

TRUTHY = {"1", "true", "yes", "on"}


def load_config(env_file: Optional[str] = None, **overrides: Any) -> BootstrapConfig:
    """Build a BootstrapConfig from .env, the process environment and overrides.

    Without `env_file` the nearest .env from the working directory upwards
    is used, if any.

    Raises:
        FileNotFoundError: if `env_file` is given but does not exist
        pydantic.ValidationError: if a value is invalid
    """
    if env_file is not None and not os.path.isfile(env_file):
        raise FileNotFoundError(f"env file not found: {env_file}")
    load_dotenv(env_file or find_dotenv(usecwd=True))

    values: Dict[str, Any] = {}
    if os.getenv("ECPKI_OUTPUT_DIR"):
        values["output_dir"] = os.getenv("ECPKI_OUTPUT_DIR")
    if os.getenv("ECPKI_CURVE"):
        values["curve"] = os.getenv("ECPKI_CURVE")
    if os.getenv("ECPKI_RANDOM_SERIALS"):
        values["random_serials"] = os.getenv("ECPKI_RANDOM_SERIALS", "").strip().lower() in TRUTHY

    values.update({k: v for k, v in overrides.items() if v is not None})
    return BootstrapConfig(**values)
