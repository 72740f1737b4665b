"""Shared fixtures built on the in-memory Docker Engine."""

import pytest

from dockwatch import Config, DockerUpdater
from registry_auth import RegistryAuth
from tests.helpers import FakeDocker


@pytest.fixture
def docker():
    return FakeDocker()


@pytest.fixture
def make_updater(docker):
    def _make(bail=False, tokens=None):
        return DockerUpdater(Config(bail=bail), docker=docker, registry_auth=RegistryAuth(tokens))
    return _make


@pytest.fixture
def updater(make_updater):
    return make_updater()
