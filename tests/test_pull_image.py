"""Tests for consuming the image pull event stream."""

import pytest
import requests

from dockwatch import ImageRef, PullError

REF = ImageRef('hub.docker.com', 'docker.io/library/nginx')


@pytest.fixture
def progress():
    events = []

    def _callback(event, info):
        events.append((event, info))
    _callback.events = events
    return _callback


class TestPullImage:
    def test_stream_end_is_success(self, updater, docker, progress):
        docker.pulls[REF.reference] = [
            {'status': 'Pulling from library/nginx', 'id': 'latest'},
            {'status': 'Downloading', 'progress': '[=====>     ] 5MB/10MB', 'id': 'a1'},
            {'status': 'Digest: sha256:d2'},
        ]
        updater.pull_image(REF, progress)

        messages = [info['message'] for event, info in progress.events if event == 'pull_progress']
        assert messages == [
            'docker.io/library/nginx: Pulling from library/nginx',
            'docker.io/library/nginx [=====>     ] 5MB/10MB',
            'docker.io/library/nginx: Digest: sha256:d2',
        ]
        assert progress.events[-1] == ('pull_complete', {'image': REF.reference})

    def test_error_event_fails_pull(self, updater, docker):
        docker.pulls[REF.reference] = [
            {'status': 'Pulling from library/nginx'},
            {'errorDetail': {'message': 'manifest unknown'}, 'error': 'manifest unknown'},
            {'status': 'never reached'},
        ]
        with pytest.raises(PullError) as exc:
            updater.pull_image(REF)
        assert 'manifest unknown' in str(exc.value)

    def test_schema1_notice_is_suppressed(self, updater, docker, progress):
        docker.pulls[REF.reference] = [
            {'status': '[DEPRECATION NOTICE] docker.io/library/nginx uses outdated schema1 manifest format.'},
            {'status': 'Status: Downloaded newer image'},
        ]
        updater.pull_image(REF, progress)
        messages = [info['message'] for event, info in progress.events if event == 'pull_progress']
        assert messages == ['docker.io/library/nginx: Status: Downloaded newer image']

    def test_undecodable_line_fails_pull(self, updater, docker):
        docker.pulls[REF.reference] = [{'status': 'ok'}, b'{not json']
        with pytest.raises(PullError):
            updater.pull_image(REF)

    def test_non_object_event_fails_pull(self, updater, docker):
        docker.pulls[REF.reference] = [b'["unexpected"]']
        with pytest.raises(PullError):
            updater.pull_image(REF)

    def test_event_without_status_fails_pull(self, updater, docker):
        docker.pulls[REF.reference] = [{'id': 'a1'}]
        with pytest.raises(PullError):
            updater.pull_image(REF)

    def test_transport_error_is_pull_error(self, updater, docker):
        docker.failures['pull'] = requests.HTTPError('401 Client Error: Unauthorized')
        with pytest.raises(PullError) as exc:
            updater.pull_image(REF)
        assert 'Unauthorized' in str(exc.value)

    def test_credentials_looked_up_by_registry(self, make_updater, docker):
        updater = make_updater(tokens={'https://index.docker.io/v1/': 'hub-token'})
        updater.pull_image(REF)
        updater.pull_image(ImageRef('quay.io', 'quay.io/coreos/etcd'))
        assert docker.calls_to('pull') == [
            ('pull', 'docker.io/library/nginx', 'hub-token'),
            ('pull', 'quay.io/coreos/etcd', None),
        ]
