"""
Tests for the Flask presentation adapter.
"""

import time

import pytest

from reorder_risk.api.ml_service import PipelineRunner, create_app
from reorder_risk.pipeline.state import PipelineStatus

from conftest import BlockingAccessor, StaticAccessor


def wait_for_status(orchestrator, status, timeout=15.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        snapshot = orchestrator.snapshot()
        if snapshot.status is status and snapshot.in_flight is None:
            return snapshot
        time.sleep(0.02)
    raise AssertionError(f"Pipeline did not reach {status.value}; last status {orchestrator.snapshot().status.value}")


@pytest.fixture
def make_service(make_orchestrator):
    runners = []

    def factory(accessor):
        orchestrator = make_orchestrator(accessor)
        runner = PipelineRunner(orchestrator)
        runners.append(runner)
        app = create_app(orchestrator, runner)
        app.config['TESTING'] = True
        return app.test_client(), orchestrator, runner

    yield factory
    for runner in runners:
        runner.stop()


class TestServiceEndpoints:

    def test_health(self, make_service, catalog_payload):
        client, _, _ = make_service(StaticAccessor(catalog_payload))

        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'
        assert response.get_json()['model_ready'] is False
        assert response.get_json()['pipeline_status'] == 'idle'

    def test_predict_before_training(self, make_service, catalog_payload):
        client, _, _ = make_service(StaticAccessor(catalog_payload))

        response = client.post('/predict', json={'data': [catalog_payload[0]]})

        assert response.status_code == 409
        assert response.get_json()['type'] == 'ModelNotTrainedError'

    def test_load_catalog(self, make_service, catalog_payload):
        client, orchestrator, _ = make_service(StaticAccessor(catalog_payload))

        response = client.post('/catalog/load')
        assert response.status_code == 202

        wait_for_status(orchestrator, PipelineStatus.CATALOG_LOADED)
        status = client.get('/status?records=true').get_json()
        assert status['status'] == 'catalogLoaded'
        assert status['record_count'] == len(catalog_payload)
        assert [r['id'] for r in status['records']] == [p['id'] for p in catalog_payload]

    def test_status_omits_records_by_default(self, make_service, catalog_payload):
        client, _, _ = make_service(StaticAccessor(catalog_payload))
        assert 'records' not in client.get('/status').get_json()

    def test_train_without_catalog(self, make_service):
        client, _, _ = make_service(StaticAccessor([]))

        response = client.post('/train', json={})

        assert response.status_code == 400
        assert response.get_json()['type'] == 'EmptyTrainingSetError'

    def test_train_with_invalid_options(self, make_service, catalog_payload):
        client, orchestrator, runner = make_service(StaticAccessor(catalog_payload))
        runner.run(orchestrator.load_catalog, timeout=10)

        response = client.post('/train', json={'optimizer': 'rmsprop'})

        assert response.status_code == 400
        assert response.get_json()['type'] == 'TrainingConfigError'

    def test_concurrent_load_rejected(self, make_service, catalog_payload):
        accessor = BlockingAccessor(catalog_payload)
        client, orchestrator, _ = make_service(accessor)

        try:
            assert client.post('/catalog/load').status_code == 202
            assert accessor.entered.wait(timeout=5)

            response = client.post('/catalog/load')
            assert response.status_code == 409
            assert response.get_json()['type'] == 'OperationInProgressError'
        finally:
            accessor.release.set()

        wait_for_status(orchestrator, PipelineStatus.CATALOG_LOADED)
        assert accessor.calls == 1

    def test_train_and_predict_flow(self, make_service, catalog_payload, fast_options):
        client, orchestrator, runner = make_service(StaticAccessor(catalog_payload))
        runner.run(orchestrator.load_catalog, timeout=10)

        assert client.get('/predictions').get_json()['predictions'][0]['decision'] == 'train model'

        response = client.post('/train', json=fast_options)
        assert response.status_code == 202
        wait_for_status(orchestrator, PipelineStatus.READY)

        predictions = client.get('/predictions').get_json()
        assert predictions['model_version'] == orchestrator.state.classifier.version
        assert len(predictions['predictions']) == len(catalog_payload)
        for item in predictions['predictions']:
            assert 0.0 <= item['probability'] <= 1.0
            assert item['decision'] in ('reorder', 'no reorder')

        response = client.post('/predict', json={'data': [
            {'id': 1, 'inventory': 5, 'avg_sales': 10, 'lead_time': 2},
            {'id': 2, 'inventory': 'unknown'},
        ]})
        results = response.get_json()['predictions']

        assert response.status_code == 200
        assert 0.0 <= results[0]['reorder_probability'] <= 1.0
        assert results[1]['id'] == 2
        assert 'error' in results[1]

    def test_predict_rejects_non_object_records(self, make_service, catalog_payload, fast_options):
        client, orchestrator, runner = make_service(StaticAccessor(catalog_payload))
        runner.run(orchestrator.load_catalog, timeout=10)
        runner.run(lambda: orchestrator.train(fast_options), timeout=30)

        response = client.post('/predict', json={'data': [42]})

        assert response.status_code == 400
        assert response.get_json()['type'] == 'MalformedRecordError'
