"""In-memory stand-in for the Docker Engine and builders for its API payloads."""

import json

import requests


class FakeDocker:
    """Records every call and answers from plain dicts shaped like the Engine API.

    ``failures`` maps a call name (``list``, ``inspect_container``,
    ``inspect_image``, ``pull``, ``remove``, ``create``, ``start``) to the
    exception that call should raise.
    """

    def __init__(self, containers=None, details=None, images=None, pulls=None):
        self.containers = containers or []
        self.details = details or {}
        self.images = images or {}
        self.pulls = pulls or {}
        self.failures = {}
        self.calls = []
        self._created = 0

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def calls_to(self, name):
        return [c for c in self.calls if c[0] == name]

    def list_containers(self):
        self._call('list')
        return self.containers

    def inspect_container(self, container_id):
        self._call('inspect_container', container_id)
        if container_id not in self.details:
            raise requests.HTTPError(f"404 Client Error: No such container: {container_id}")
        return self.details[container_id]

    def inspect_image(self, name):
        self._call('inspect_image', name)
        if name not in self.images:
            raise requests.HTTPError(f"404 Client Error: No such image: {name}")
        return self.images[name]

    def pull_image(self, reference, auth=None):
        self._call('pull', reference, auth)
        events = self.pulls.get(reference, [{'status': 'Status: Image is up to date'}])
        return iter(e if isinstance(e, bytes) else json.dumps(e).encode() for e in events)

    def remove_container(self, container_id):
        self._call('remove', container_id)
        self.details.pop(container_id, None)

    def create_container(self, config, host_config, networking_config, name):
        self._call('create', config, host_config, networking_config, name)
        self._created += 1
        return f"{self._created:02d}" + "f" * 62

    def start_container(self, container_id):
        self._call('start', container_id)


def make_summary(container_id, name, image, image_id, state='running', labels=None):
    """One entry of GET /containers/json."""
    return {
        'Id': container_id,
        'Names': [f'/{name}'],
        'Image': image,
        'ImageID': image_id,
        'State': state,
        'Labels': labels or {},
    }


def make_details(container_id, name, image, networks=None):
    """Minimal GET /containers/{id}/json result."""
    return {
        'Id': container_id,
        'Name': f'/{name}',
        'Image': 'sha256:old',
        'Config': {'Image': image, 'Env': ['PATH=/usr/bin:/bin'], 'Labels': {}},
        'HostConfig': {'NetworkMode': 'default', 'RestartPolicy': {'Name': 'always'}},
        'NetworkSettings': {'Networks': networks if networks is not None else {'bridge': {}}},
    }


