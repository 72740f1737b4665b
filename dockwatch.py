#!/usr/bin/env python3
"""
Docker Container Auto-Update

Watches the running containers of a Docker host, pulls the image each one was
started from and, when the pulled image differs from the one the container is
running, recreates the container in place with the same name, configuration
and network attachments.
"""

__version__ = "1.0.0"

import argparse
import enum
import json
import logging
import os
import re
import socket as _socket
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter as _HTTPAdapter
from urllib3.connection import HTTPConnection as _HTTPConnection
from urllib3.connectionpool import HTTPConnectionPool as _HTTPConnectionPool

from registry_auth import RegistryAuth, default_config_path


# Constants
DEFAULT_REGISTRY = "docker.io"
DEFAULT_NAMESPACE = "library"
DEFAULT_REGISTRY_NAME = "hub.docker.com"
DIGEST_PREFIX = "sha256:"
COMPOSE_LABEL = "com.docker.compose.config-hash"
SCHEMA1_NOTICE = "uses outdated schema1 manifest format"
REQUEST_TIMEOUT = 30
PULL_TIMEOUT = 300
DEFAULT_INTERVAL = "1m"
ERASE_END_LINE = "\x1b[K"
DOCKER_SOCKET_PATH = os.environ.get('DOCKER_SOCKET', '/var/run/docker.sock')

ProgressCallback = Callable[[str, Dict[str, Any]], None]


# ---------------------------------------------------------------------------
# Docker Engine socket client
# ---------------------------------------------------------------------------

class _UnixSocketConnection(_HTTPConnection):
    """Connection whose transport is the Engine socket file, not TCP."""

    def __init__(self, socket_path: str):
        super().__init__('localhost')
        self._socket_path = socket_path

    def connect(self):
        sock = _socket.socket(_socket.AF_UNIX, _socket.SOCK_STREAM)
        sock.connect(self._socket_path)
        self.sock = sock


class _UnixSocketPool(_HTTPConnectionPool):
    """Pool handing out socket-file connections; the host name is a placeholder."""

    def __init__(self, socket_path: str):
        super().__init__('localhost')
        self._socket_path = socket_path

    def _new_conn(self):
        return _UnixSocketConnection(self._socket_path)


class _UnixSocketAdapter(_HTTPAdapter):
    """Mounted on http+unix:// so a requests Session reaches the Engine."""

    def __init__(self, socket_path: str):
        self._socket_path = socket_path
        super().__init__()

    def get_connection(self, url: str, proxies=None):
        return _UnixSocketPool(self._socket_path)

    # Hook used instead of get_connection by newer requests releases
    def get_connection_with_tls_context(self, request, verify, proxies=None, cert=None):
        return _UnixSocketPool(self._socket_path)


def split_tag(reference: str) -> Tuple[str, Optional[str]]:
    """Split ``name:tag`` into name and tag.

    A ``@sha256:...`` digest suffix is dropped first.  Only a colon after the
    last slash starts a tag, so a registry port such as ``localhost:5000/app``
    is left alone.
    """
    reference = reference.split('@', 1)[0]
    last_slash = reference.rfind('/')
    last_colon = reference.rfind(':')
    if last_colon > last_slash:
        return reference[:last_colon], reference[last_colon + 1:]
    return reference, None


class DockerClient:
    """Docker Engine API client covering the calls the updater needs."""

    def __init__(self, socket_path: str = DOCKER_SOCKET_PATH):
        self._session = requests.Session()
        self._session.mount('http+unix://', _UnixSocketAdapter(socket_path))

    def _url(self, path: str) -> str:
        return f'http+unix://docker{path}'

    def get(self, path: str, **kwargs) -> requests.Response:
        r = self._session.get(self._url(path), timeout=REQUEST_TIMEOUT, **kwargs)
        r.raise_for_status()
        return r

    def post(self, path: str, **kwargs) -> requests.Response:
        r = self._session.post(self._url(path), timeout=REQUEST_TIMEOUT, **kwargs)
        r.raise_for_status()
        return r

    def delete(self, path: str, **kwargs) -> requests.Response:
        r = self._session.delete(self._url(path), timeout=REQUEST_TIMEOUT, **kwargs)
        r.raise_for_status()
        return r

    def list_containers(self) -> List[Dict[str, Any]]:
        """Running containers, with their state and labels."""
        return self.get('/containers/json').json()

    def inspect_container(self, container_id: str) -> Dict[str, Any]:
        return self.get(f'/containers/{container_id}/json').json()

    def inspect_image(self, name: str) -> Dict[str, Any]:
        return self.get(f'/images/{name}/json').json()

    def pull_image(self, reference: str, auth: Optional[str] = None) -> Iterator[bytes]:
        """Pull every tag of the repository behind ``reference``.

        Tag and digest are dropped from the request so the Engine fetches all
        tags, and the raw JSON lines of the progress stream are yielded.  The
        request is only sent once iteration starts.
        """
        image, _ = split_tag(reference)
        params = {'fromImage': image}
        headers = {'X-Registry-Auth': auth} if auth else {}

        response = self._session.post(
            self._url('/images/create'),
            params=params,
            headers=headers,
            stream=True,
            timeout=PULL_TIMEOUT,  # image pulls can take a while
        )
        with response:
            response.raise_for_status()
            for line in response.iter_lines():
                if line:
                    yield line

    def remove_container(self, container_id: str) -> None:
        """Force-remove a container and its anonymous volumes, keeping links."""
        self.delete(
            f'/containers/{container_id}',
            params={'force': 'true', 'v': 'true', 'link': 'false'},
        )

    def create_container(self, config: Dict[str, Any], host_config: Dict[str, Any],
                         networking_config: Dict[str, Any], name: str) -> str:
        body = dict(config)
        body['HostConfig'] = host_config
        body['NetworkingConfig'] = networking_config
        response = self.post('/containers/create', params={'name': name}, json=body)
        return response.json()['Id']

    def start_container(self, container_id: str) -> None:
        self.post(f'/containers/{container_id}/start')


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class UpdateError(Exception):
    """Base class for failures while updating a single container."""


class ResolutionError(UpdateError):
    """The container's image field cannot be mapped to a pullable reference."""


class UnresolvableDigestImage(ResolutionError):
    pass


class MalformedImageReference(ResolutionError):
    pass


class InspectionError(UpdateError):
    """The Engine refused to describe a container or an image."""


class PullError(UpdateError):
    """The pull request failed or its event stream reported an error."""


class RecreateError(UpdateError):
    """Removing, creating or starting the container failed.

    ``step`` is one of ``remove``, ``create`` or ``start``.  Anything past
    ``remove`` means the original container no longer exists.
    """

    def __init__(self, step: str, container: str, cause: Exception):
        self.step = step
        self.container = container
        self.cause = cause
        super().__init__(f"Failed to {step} container {container}: {cause}")

    @property
    def container_lost(self) -> bool:
        return self.step != 'remove'


class ContainerListError(UpdateError):
    """The Engine could not enumerate containers; the cycle cannot run."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageRef:
    """Canonical image reference and the registry it is pulled from."""
    registry: str
    reference: str

    def __str__(self) -> str:
        return self.reference


@dataclass
class ContainerInfo:
    """Snapshot of one entry of the container list."""
    id: str
    names: List[str]
    image: str
    image_id: str
    state: str
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ContainerInfo':
        # API returns Names with leading slashes, e.g. ["/web"]
        return cls(
            id=data['Id'],
            names=[name.lstrip('/') for name in data.get('Names') or []],
            image=data.get('Image', ''),
            image_id=data.get('ImageID', ''),
            state=data.get('State', ''),
            labels=data.get('Labels') or {},
        )

    @property
    def compose_managed(self) -> bool:
        return COMPOSE_LABEL in self.labels

    @property
    def running(self) -> bool:
        return self.state == 'running'

    @property
    def display_name(self) -> str:
        return self.names[0] if self.names else self.id[:6]


class ImageStatus(enum.Enum):
    NOT_PROCESSED = 'not processed'
    PULLED_UNCHANGED = 'pulled-unchanged'
    PULLED_UPDATED = 'pulled-updated'
    FAILED = 'failed'


class UpdateCache:
    """Results of the image pulls done during one cycle.

    Keyed by canonical reference so that containers sharing an image reuse a
    single pull.  A new cache is built for every cycle.
    """

    def __init__(self):
        self._results: Dict[str, Tuple[ImageStatus, Optional[UpdateError]]] = {}

    def status(self, reference: str) -> ImageStatus:
        return self._results.get(reference, (ImageStatus.NOT_PROCESSED, None))[0]

    def error(self, reference: str) -> Optional[UpdateError]:
        return self._results.get(reference, (ImageStatus.NOT_PROCESSED, None))[1]

    def record(self, reference: str, status: ImageStatus,
               error: Optional[UpdateError] = None) -> None:
        self._results[reference] = (status, error)

    def __contains__(self, reference: str) -> bool:
        return reference in self._results

    def __len__(self) -> int:
        return len(self._results)


# Container outcomes
SKIPPED = 'skipped'
UP_TO_DATE = 'up-to-date'
UPDATED = 'updated'
FAILED = 'failed'


@dataclass
class ContainerResult:
    container: str
    image: str
    outcome: str
    new_id: Optional[str] = None
    error: Optional[UpdateError] = None


@dataclass
class CycleReport:
    """Everything one call to ``check_updates`` did.

    ``fatal`` is set when the container list could not be fetched at all;
    ``bailed`` when the cycle stopped early on a container error.
    """
    results: List[ContainerResult] = field(default_factory=list)
    fatal: Optional[ContainerListError] = None
    bailed: bool = False

    @property
    def updated(self) -> List[ContainerResult]:
        return [r for r in self.results if r.outcome == UPDATED]

    @property
    def errors(self) -> List[ContainerResult]:
        return [r for r in self.results if r.outcome == FAILED]

    @property
    def ok(self) -> bool:
        return self.fatal is None and not self.errors


_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|h|m|s)')
_DURATION_UNITS = {'h': 3600, 'm': 60, 's': 1, 'ms': 0.001}


def parse_duration(text: str) -> float:
    """Parse ``90``, ``30s``, ``5m`` or ``1h30m`` into seconds."""
    text = text.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos == 0 or pos != len(text):
            raise ValueError(f"Invalid duration: {text!r}")
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {text!r}")
    return seconds


def format_duration(seconds: float) -> str:
    """Render seconds the way ``1h2m3s`` durations are written."""
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


@dataclass
class Config:
    """Run settings, fixed for the lifetime of the updater.

    Attributes:
        interval: Seconds between two cycles in watch mode
        watch: Keep running cycles instead of checking once
        bail: Stop at the first container error
        image_filter: Regex on image IDs; accepted and validated but not applied yet
    """
    interval: float = 60.0
    watch: bool = False
    bail: bool = False
    image_filter: Optional[str] = None

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError(f"Interval must be positive, got {self.interval}")
        if self.image_filter:
            try:
                re.compile(self.image_filter)
            except re.error as e:
                raise ValueError(f"Invalid image filter '{self.image_filter}': {e}")


# ---------------------------------------------------------------------------
# Resolution, comparison and recreation
# ---------------------------------------------------------------------------

def canonical_reference(image: str, container_name: str) -> ImageRef:
    """Qualify a tag-form image name with its registry and namespace.

    ``nginx`` becomes ``docker.io/library/nginx``, ``myrepo/app:latest``
    becomes ``docker.io/myrepo/app:latest`` and ``quay.io/org/app`` is kept
    as is with ``quay.io`` as its registry.
    """
    slashes = image.count('/')
    if slashes == 0:
        return ImageRef(DEFAULT_REGISTRY_NAME, f"{DEFAULT_REGISTRY}/{DEFAULT_NAMESPACE}/{image}")
    if slashes == 1:
        return ImageRef(DEFAULT_REGISTRY_NAME, f"{DEFAULT_REGISTRY}/{image}")
    if slashes == 2:
        return ImageRef(image[:image.index('/')], image)
    raise MalformedImageReference(
        f"Unexpected number of slashes in {image} (container {container_name})"
    )


def image_differs(pulled_image_id: str, container_image_id: str) -> bool:
    return pulled_image_id != container_image_id


def rebuild_container(docker, container_id: str,
                      logger: Optional[logging.Logger] = None) -> str:
    """
    Destroy a container and create it again from its own configuration.

    The container keeps its name, config, host config and network endpoints.
    There is no rollback: a failure after the remove step leaves the container
    gone, which the raised RecreateError reports through ``container_lost``.

    Args:
        docker: Docker Engine client
        container_id: ID or name of the container to rebuild
        logger: Logger for the restart message

    Returns:
        ID of the new container
    """
    logger = logger or logging.getLogger(__name__)

    try:
        info = docker.inspect_container(container_id)
    except requests.RequestException as e:
        raise InspectionError(f"Failed to inspect container {container_id[:6]}: {e}") from e

    old_id = info.get('Id', container_id)
    name = (info.get('Name') or '').lstrip('/')
    config = info.get('Config') or {}
    host_config = info.get('HostConfig') or {}
    networks = (info.get('NetworkSettings') or {}).get('Networks') or {}

    try:
        docker.remove_container(old_id)
    except requests.RequestException as e:
        raise RecreateError('remove', name or old_id[:6], e) from e

    try:
        new_id = docker.create_container(config, host_config, {'EndpointsConfig': networks}, name)
    except (requests.RequestException, KeyError) as e:
        raise RecreateError('create', name or old_id[:6], e) from e

    try:
        docker.start_container(new_id)
    except requests.RequestException as e:
        raise RecreateError('start', name or old_id[:6], e) from e

    logger.info(f"Restarted {config.get('Image', '')} container: {old_id[:6]} as {new_id[:6]}")
    return new_id


# ---------------------------------------------------------------------------
# Update cycle
# ---------------------------------------------------------------------------

class DockerUpdater:
    def __init__(self, config: Config, docker=None,
                 registry_auth: Optional[RegistryAuth] = None, log_level: str = "INFO"):
        """
        Initialize the container updater.

        Args:
            config: Run settings (interval, watch, bail, image filter)
            docker: Docker Engine client; defaults to one on DOCKER_SOCKET
            registry_auth: Credentials used for pulls, anonymous when omitted
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        self.config = config
        self.logger = self._setup_logging(log_level)
        self._docker = docker if docker is not None else DockerClient()
        self._auth = registry_auth if registry_auth is not None else RegistryAuth()

    def _setup_logging(self, level: str) -> logging.Logger:
        """Setup logging configuration."""
        logger = logging.getLogger('dockwatch')
        logger.setLevel(getattr(logging, level.upper()))

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def resolve_image(self, container: ContainerInfo) -> ImageRef:
        """
        Work out the canonical reference to pull for a container.

        Containers started by digest carry a bare image ID; the first tag the
        Engine knows for that image is used instead, without its tag suffix.

        Raises:
            UnresolvableDigestImage: the image ID has no tag or cannot be inspected
            MalformedImageReference: the name has more path components than
                registry/namespace/repository
        """
        name = container.display_name
        image = container.image

        if image.startswith(DIGEST_PREFIX):
            try:
                details = self._docker.inspect_image(image)
            except requests.RequestException as e:
                raise UnresolvableDigestImage(
                    f"Failed to inspect image {image[:13]} of container {name}: {e}"
                ) from e
            tags = details.get('RepoTags') or []
            if not tags:
                raise UnresolvableDigestImage(
                    f"Failed to resolve image for container {name}: {image[:13]} has no tags"
                )
            image, _ = split_tag(tags[0])

        return canonical_reference(image, name)

    @staticmethod
    def _decode_pull_event(image: str, line: bytes) -> Optional[str]:
        """Turn one line of the pull stream into a progress message.

        Returns None for lines that are not worth showing.
        """
        try:
            event = json.loads(line)
        except ValueError as e:
            raise PullError(f"Malformed pull event for {image}: {e}") from e
        if not isinstance(event, dict):
            raise PullError(f"Malformed pull event for {image}: {line!r}")

        if 'error' in event:
            raise PullError(f"Failed to fetch {image}: {event['error']}")
        if 'progress' in event:
            return f"{image} {event['progress']}"

        status = event.get('status')
        if not isinstance(status, str):
            raise PullError(f"Malformed pull event for {image}: {line!r}")
        if SCHEMA1_NOTICE in status:
            return None
        return f"{image}: {status}"

    def pull_image(self, ref: ImageRef,
                   progress_callback: Optional[ProgressCallback] = None) -> None:
        """
        Pull an image, consuming the Engine's progress stream to the end.

        Args:
            ref: Canonical image reference
            progress_callback: Receives ('pull_progress', {'image', 'message'})
                for each line worth showing and ('pull_complete', {'image'})
                once the stream ends

        Raises:
            PullError: transport failure, an error event, or an undecodable line
        """
        auth = self._auth.for_registry(ref.registry)
        self.logger.info(f"Checking image: {ref}")

        try:
            for line in self._docker.pull_image(ref.reference, auth):
                message = self._decode_pull_event(ref.reference, line)
                if message is None:
                    continue
                self.logger.debug(message)
                if progress_callback:
                    progress_callback('pull_progress', {'image': ref.reference, 'message': message})
        except requests.RequestException as e:
            raise PullError(f"Failed to fetch {ref}: {e}") from e

        if progress_callback:
            progress_callback('pull_complete', {'image': ref.reference})

    def _refresh_image(self, ref: ImageRef, container: ContainerInfo,
                       progress_callback: Optional[ProgressCallback]) -> ImageStatus:
        """Pull ``ref`` and tell whether it moved away from the container's image."""
        self.pull_image(ref, progress_callback)

        try:
            details = self._docker.inspect_image(ref.reference)
        except requests.RequestException as e:
            raise InspectionError(f"Failed to inspect {ref}: {e}") from e

        pulled_id = details.get('Id', '')
        if image_differs(pulled_id, container.image_id):
            self.logger.debug(f"{ref}: {container.image_id[:19]} -> {pulled_id[:19]}")
            return ImageStatus.PULLED_UPDATED
        return ImageStatus.PULLED_UNCHANGED

    def _recreate(self, container: ContainerInfo, ref: ImageRef) -> ContainerResult:
        name = container.display_name
        self.logger.info(f"Restarting container: {name} ({ref})")
        try:
            new_id = rebuild_container(self._docker, container.id, self.logger)
        except RecreateError as e:
            if e.container_lost:
                self.logger.error(
                    f"Container {name} was removed but not recreated "
                    f"(step '{e.step}' failed for {ref})"
                )
            self.logger.error(f"Failed to update {name}: {e}")
            return ContainerResult(name, ref.reference, FAILED, error=e)
        except InspectionError as e:
            self.logger.error(f"Failed to update {name}: {e}")
            return ContainerResult(name, ref.reference, FAILED, error=e)
        return ContainerResult(name, ref.reference, UPDATED, new_id=new_id)

    def check_container(self, container: ContainerInfo, cache: UpdateCache,
                        progress_callback: Optional[ProgressCallback] = None) -> ContainerResult:
        """Evaluate one container against the cycle's cache and update it if needed."""
        name = container.display_name

        if container.compose_managed:
            self.logger.debug(f"Skipping {name}: managed by docker compose")
            return ContainerResult(name, container.image, SKIPPED)
        if not container.running:
            self.logger.debug(f"Skipping {name}: {container.state or 'not running'}")
            return ContainerResult(name, container.image, SKIPPED)

        try:
            ref = self.resolve_image(container)
        except ResolutionError as e:
            self.logger.error(str(e))
            return ContainerResult(name, container.image, FAILED, error=e)

        status = cache.status(ref.reference)
        if status is ImageStatus.NOT_PROCESSED:
            try:
                status = self._refresh_image(ref, container, progress_callback)
            except (PullError, InspectionError) as e:
                cache.record(ref.reference, ImageStatus.FAILED, e)
                self.logger.error(f"Failed to check {name} ({ref}): {e}")
                return ContainerResult(name, ref.reference, FAILED, error=e)
            cache.record(ref.reference, status)
        elif status is ImageStatus.FAILED:
            error = cache.error(ref.reference)
            self.logger.warning(f"Not updating {name}: {ref} already failed this cycle ({error})")
            return ContainerResult(name, ref.reference, FAILED, error=error)

        if status is ImageStatus.PULLED_UPDATED:
            return self._recreate(container, ref)

        self.logger.info(f"{name} is up-to-date")
        return ContainerResult(name, ref.reference, UP_TO_DATE)

    def check_updates(self, progress_callback: Optional[ProgressCallback] = None) -> CycleReport:
        """
        Run one cycle over the running containers.

        Containers are handled one at a time in the order the Engine lists
        them.  Each distinct image is pulled at most once per cycle.  With
        ``bail`` set the cycle stops at the first failed container.

        Returns:
            CycleReport with one result per listed container
        """
        self.logger.info("Checking for updates ...")
        report = CycleReport()

        try:
            containers = [ContainerInfo.from_api(c) for c in self._docker.list_containers()]
        except (requests.RequestException, ValueError, KeyError) as e:
            report.fatal = ContainerListError(f"Failed to list containers: {e}")
            self.logger.error(str(report.fatal))
            return report

        cache = UpdateCache()
        for container in containers:
            result = self.check_container(container, cache, progress_callback)
            report.results.append(result)
            if result.outcome == FAILED and self.config.bail:
                self.logger.error(f"Stopping after error on {result.container}")
                report.bailed = True
                break

        for result in report.updated:
            self.logger.info(f"Updated {result.container} ({result.image})")
        if report.errors:
            self.logger.warning(
                f"{len(report.errors)} container(s) failed: "
                f"{', '.join(r.container for r in report.errors)}"
            )
        elif not report.updated:
            self.logger.info("No updates found")

        return report


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def print_progress(event: str, info: Dict[str, Any]) -> None:
    """Show pull progress on a single, continuously overwritten line."""
    if event == 'pull_progress':
        sys.stdout.write(f"{info['message']}{ERASE_END_LINE}\r")
    elif event == 'pull_complete':
        sys.stdout.write(f"\r{ERASE_END_LINE}")
    sys.stdout.flush()


def wait_for_next_cycle(interval: float, out=None, sleep=time.sleep) -> None:
    """Count down to the next cycle, one second at a time."""
    out = out or sys.stdout
    remaining = interval
    while remaining > 0:
        out.write(f"\r{ERASE_END_LINE}Next update check in {format_duration(remaining)}")
        out.flush()
        step = min(1.0, remaining)
        sleep(step)
        remaining -= step
    out.write(f"\r{ERASE_END_LINE}")
    out.flush()


def _env_flag(name: str) -> bool:
    return os.environ.get(name, '').lower() in ('1', 'true', 'yes')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Recreate running containers whose image changed upstream'
    )
    parser.add_argument(
        '--interval',
        type=parse_duration,
        default=os.environ.get('INTERVAL', DEFAULT_INTERVAL),
        help='Duration in between checks, e.g. 30s, 5m, 1h30m (env: INTERVAL, default: 1m)'
    )
    parser.add_argument(
        '--watch',
        action='store_true',
        default=_env_flag('WATCH'),
        help='Keep running; without it containers are only checked once (env: WATCH)'
    )
    parser.add_argument(
        '--bail',
        action='store_true',
        default=_env_flag('BAIL'),
        help='Exit as soon as an error occurs (env: BAIL)'
    )
    parser.add_argument(
        '--image-ids',
        default=os.environ.get('IMAGE_IDS') or None,
        help='RegExp to match image IDs, reserved and not applied yet (env: IMAGE_IDS)'
    )
    parser.add_argument(
        '--docker-config',
        default=str(default_config_path()),
        help='Docker CLI config holding registry credentials (default: ~/.docker/config.json)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=os.environ.get('LOG_LEVEL', 'INFO'),
        help='Logging level (env: LOG_LEVEL, default: INFO)'
    )
    return parser


def _report_failed(report: CycleReport) -> bool:
    return report.fatal is not None or report.bailed


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = Config(
            interval=args.interval,
            watch=args.watch,
            bail=args.bail,
            image_filter=args.image_ids,
        )
        updater = DockerUpdater(
            config,
            registry_auth=RegistryAuth.from_file(args.docker_config),
            log_level=args.log_level,
        )
        if config.image_filter:
            updater.logger.warning("--image-ids is reserved and currently ignored")

        report = updater.check_updates(print_progress)
        if _report_failed(report):
            return 1

        while config.watch:
            sys.stdout.write("------------------------\n")
            wait_for_next_cycle(config.interval)
            report = updater.check_updates(print_progress)
            if _report_failed(report):
                return 1

    except KeyboardInterrupt:
        logging.getLogger('dockwatch').info("Exiting...")
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
