import pytest

import grpcschema.SchemaWorker as worker_module
from grpcschema.SchemaWorker import SchemaWorker
from grpcschema.errors import SourceConnectionError
from grpcschema.models import Service


@pytest.fixture
def received():
    return {'finished': [], 'error': []}


def _connect(worker, received):
    worker.finished.connect(received['finished'].append)
    worker.error.connect(received['error'].append)


class TestSchemaWorker:
    def test_emits_services(self, monkeypatch, received):
        calls = []

        def fake_get_info(host, creds=None, auth=None, timeout=None):
            calls.append((host, creds, auth, timeout))
            return [Service(name='Greeter', package_name='pkg')]

        monkeypatch.setattr(worker_module, 'get_info', fake_get_info)
        worker = SchemaWorker('localhost:50051', timeout=1.5)
        _connect(worker, received)

        worker.run()

        assert received['finished'] == [
            {'error': False, 'data': [{'name': 'Greeter', 'package_name': 'pkg', 'methods': []}]},
        ]
        assert received['error'] == []
        assert calls == [('localhost:50051', {}, None, 1.5)]

    def test_host_required(self, received):
        worker = SchemaWorker('')
        _connect(worker, received)

        worker.run()

        assert received['finished'] == [{'error': True, 'data': 'Host is required'}]

    def test_connection_failure_emits_error(self, monkeypatch, received):
        def failing_get_info(host, **kwargs):
            raise SourceConnectionError(host, 'channel not ready before timeout')

        monkeypatch.setattr(worker_module, 'get_info', failing_get_info)
        worker = SchemaWorker('nowhere:1')
        _connect(worker, received)

        worker.run()

        assert received['finished'] == []
        assert received['error'] == ["Could not connect to server at 'nowhere:1': channel not ready before timeout"]
