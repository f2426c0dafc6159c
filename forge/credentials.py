
import dataclasses
import json
import logging
import os
import pathlib

from typing import Mapping
from typing import Optional

from forge.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = "config/credentials.json"

ENV_PREFIX = "PLAYERFORGE_"

@dataclasses.dataclass(frozen = True)
class SigningCredentials:
    keystore_name: str
    keystore_pass: str = dataclasses.field(repr = False)
    keyalias_name: str
    keyalias_pass: str = dataclasses.field(repr = False)

FIELDS = [field.name for field in dataclasses.fields(SigningCredentials)]

def load_signing_credentials(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> SigningCredentials:
    """Reads keystore credentials from a JSON file, with environment overrides per field.

    The file is optional as long as the environment supplies everything, which is the usual setup on CI.
    """
    if environ is None:
        environ = os.environ

    values = {}

    credpath = pathlib.Path(path or DEFAULT_CREDENTIALS_PATH)
    if credpath.is_file():
        with open(credpath, "r") as f:
            try:
                values.update(json.load(f))
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Signing credentials file {credpath} isn't valid JSON: {e}")
        logger.debug(f"CREDENTIALS: loaded {credpath}")

    for field in FIELDS:
        envname = f"{ENV_PREFIX}{field.upper()}"
        if envname in environ:
            values[field] = environ[envname]

    missing = [field for field in FIELDS if not values.get(field)]
    if missing:
        raise ConfigurationError(f"Missing signing credentials: {', '.join(missing)} (checked {credpath} and {ENV_PREFIX}* environment variables)")

    return SigningCredentials(**{field: str(values[field]) for field in FIELDS})
