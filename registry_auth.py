"""
Registry credentials for image pulls, read from the Docker CLI config file.

The Engine takes pull credentials in the ``X-Registry-Auth`` header as
base64url-encoded JSON.  Tokens are built once when the config is loaded and
handed out as opaque strings afterwards.
"""

import base64
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema

logger = logging.getLogger(__name__)

# Every name Docker Hub goes by in config files and image references
_DOCKER_HUB_HOSTS = {'docker.io', 'hub.docker.com', 'index.docker.io', 'registry-1.docker.io'}
_DOCKER_HUB = 'docker.io'

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "auths": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "auth": {"type": "string"},
                    "identitytoken": {"type": "string"}
                }
            }
        }
    }
}


def default_config_path() -> Path:
    """Location of the Docker CLI config, honouring DOCKER_CONFIG."""
    config_dir = os.environ.get('DOCKER_CONFIG')
    if config_dir:
        return Path(config_dir) / 'config.json'
    return Path.home() / '.docker' / 'config.json'


def normalize_registry(name: str) -> str:
    """Reduce a registry name or URL to the host used as lookup key.

    ``https://index.docker.io/v1/`` and ``hub.docker.com`` both map to
    ``docker.io``.
    """
    host = name
    for scheme in ('https://', 'http://'):
        if host.startswith(scheme):
            host = host[len(scheme):]
    host = host.split('/', 1)[0].lower()
    return _DOCKER_HUB if host in _DOCKER_HUB_HOSTS else host


def encode_auth(entry: Dict[str, Any], server: str) -> Optional[str]:
    """Build the X-Registry-Auth value for one ``auths`` entry.

    Returns None when the entry holds no usable credential (e.g. it defers to
    a credential helper).
    """
    if entry.get('identitytoken'):
        payload = {'identitytoken': entry['identitytoken'], 'serveraddress': server}
    elif entry.get('auth'):
        try:
            decoded = base64.b64decode(entry['auth']).decode('utf-8')
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid auth entry for {server}: {e}") from e
        username, sep, password = decoded.partition(':')
        if not sep:
            raise ValueError(f"Invalid auth entry for {server}: expected user:password")
        payload = {'username': username, 'password': password, 'serveraddress': server}
    else:
        return None

    return base64.urlsafe_b64encode(json.dumps(payload).encode('utf-8')).decode('ascii')


def load_docker_config(path: Union[str, Path]) -> Dict[str, str]:
    """Load registry tokens from a Docker CLI config file.

    A missing file means anonymous pulls and yields an empty map.
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        logger.debug("No Docker config at %s, pulling anonymously", path)
        return {}
    except json.JSONDecodeError as e:
        logger.error("Error parsing Docker config %s: %s", path, e)
        raise

    try:
        jsonschema.validate(config, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        logger.error("Docker config %s failed validation: %s", path, e.message)
        raise

    tokens: Dict[str, str] = {}
    for server, entry in (config.get('auths') or {}).items():
        token = encode_auth(entry, server)
        if token:
            tokens[normalize_registry(server)] = token
        else:
            logger.debug("No inline credentials for %s, skipping", server)

    logger.debug("Loaded credentials for %d registr%s", len(tokens), 'y' if len(tokens) == 1 else 'ies')
    return tokens


class RegistryAuth:
    """Read-only lookup of pull credentials by registry name."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self._tokens = {normalize_registry(k): v for k, v in (tokens or {}).items()}

    @classmethod
    def from_file(cls, path: Optional[Union[str, Path]] = None) -> 'RegistryAuth':
        return cls(load_docker_config(path or default_config_path()))

    def for_registry(self, registry: str) -> Optional[str]:
        return self._tokens.get(normalize_registry(registry))

    def __len__(self) -> int:
        return len(self._tokens)
