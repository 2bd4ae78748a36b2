"""
Reorder-Risk Service - Flask API over the pipeline orchestrator

Exposes catalog loading, training, status and per-item predictions to a
presentation layer. Loading and training are started in the background on
a dedicated asyncio loop thread; clients poll ``/status`` while they run.

Endpoints:
    GET  /health
    GET  /status[?records=true]
    POST /catalog/load       -> 202
    POST /train              -> 202 (JSON body: training options)
    GET  /predictions
    POST /predict            {"data": [{"id": 1, "inventory": 5, ...}]}

Usage:
    reorder-risk-service --port 5001
"""

import argparse
import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from ..catalog.accessor import HttpCatalogAccessor
from ..config import PipelineSettings
from ..errors import (
    EmptyTrainingSetError,
    MalformedRecordError,
    ModelNotTrainedError,
    OperationInProgressError,
    PipelineError,
    TrainingConfigError,
)
from ..pipeline.orchestrator import PipelineOrchestrator
from ..pipeline.state import PipelineState

logger = logging.getLogger(__name__)

# Pipeline error -> HTTP status
ERROR_STATUS = {
    OperationInProgressError: 409,
    ModelNotTrainedError: 409,
    EmptyTrainingSetError: 400,
    MalformedRecordError: 400,
    TrainingConfigError: 400,
}

START_TIMEOUT_SECONDS = 10


class PipelineRunner:
    """
    Runs orchestrator coroutines on a background event loop.

    ``start_*`` methods return once the operation has either been accepted
    (it is now in flight) or rejected, so rejections such as
    OperationInProgressError reach the HTTP caller synchronously.
    """

    def __init__(self, orchestrator: PipelineOrchestrator):
        self.orchestrator = orchestrator
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name='pipeline-loop', daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    async def _start(self, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        task = asyncio.ensure_future(factory())
        # Let the task run up to its first suspension point (past the in-flight guard)
        await asyncio.sleep(0)
        if task.done() and not task.cancelled() and task.exception() is not None:
            raise task.exception()
        task.add_done_callback(self._log_outcome)
        return task

    @staticmethod
    def _log_outcome(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Pipeline operation was cancelled")
        elif task.exception() is not None:
            logger.info(f"Pipeline operation finished with error: {task.exception()}")

    def _submit(self, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        future = asyncio.run_coroutine_threadsafe(self._start(factory), self.loop)
        return future.result(timeout=START_TIMEOUT_SECONDS)

    def start_catalog_load(self) -> asyncio.Task:
        return self._submit(self.orchestrator.load_catalog)

    def start_training(self, options: Optional[Dict[str, Any]] = None) -> asyncio.Task:
        return self._submit(lambda: self.orchestrator.train(options))

    def run(self, factory: Callable[[], Awaitable[Any]], timeout: Optional[float] = None) -> Any:
        """Run an operation to completion and return its result."""
        future: concurrent.futures.Future = asyncio.run_coroutine_threadsafe(factory(), self.loop)
        return future.result(timeout=timeout)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)


def create_app(orchestrator: PipelineOrchestrator, runner: Optional[PipelineRunner] = None) -> Flask:
    """
    Build the Flask app around one orchestrator.

    Args:
        orchestrator: The pipeline to expose
        runner: Background loop runner (created if None)
    """
    app = Flask(__name__)
    CORS(app)

    runner = runner or PipelineRunner(orchestrator)
    app.extensions['pipeline_runner'] = runner

    @app.errorhandler(PipelineError)
    def handle_pipeline_error(error: PipelineError):
        status = next(
            (code for error_type, code in ERROR_STATUS.items() if isinstance(error, error_type)),
            500,
        )
        return jsonify({'error': str(error), 'type': type(error).__name__}), status

    @app.route('/health', methods=['GET'])
    def health():
        """Health check endpoint."""
        snapshot = orchestrator.snapshot()
        return jsonify({
            'status': 'healthy',
            'pipeline_status': snapshot.status.value,
            'model_ready': snapshot.has_model,
            'model_version': snapshot.classifier.version if snapshot.classifier else None,
        })

    @app.route('/status', methods=['GET'])
    def status():
        include_records = request.args.get('records', 'false').lower() == 'true'
        return jsonify(orchestrator.snapshot().to_dict(include_records=include_records))

    @app.route('/catalog/load', methods=['POST'])
    def load_catalog():
        runner.start_catalog_load()
        return jsonify(orchestrator.snapshot().to_dict(include_records=False)), 202

    @app.route('/train', methods=['POST'])
    def train():
        options = request.get_json(silent=True) or {}
        if not isinstance(options, dict):
            raise TrainingConfigError('Training options must be a JSON object')
        runner.start_training(options)
        return jsonify(orchestrator.snapshot().to_dict(include_records=False)), 202

    @app.route('/predictions', methods=['GET'])
    def predictions():
        snapshot = orchestrator.snapshot()
        return jsonify({
            'predictions': [p.to_dict() for p in orchestrator.predict_catalog()],
            'model_version': snapshot.classifier.version if snapshot.has_model else None,
            'degraded': snapshot.degraded,
        })

    @app.route('/predict', methods=['POST'])
    def predict():
        """
        Score raw inventory records.

        Expected input:
        {
            "data": [
                {"id": 1, "inventory": 5, "avg_sales": 10, "lead_time": 2}
            ]
        }
        """
        payload = request.get_json(silent=True) or {}
        items = payload.get('data', []) if isinstance(payload, dict) else []
        if not isinstance(items, list):
            raise MalformedRecordError("'data' must be a list of records")

        results = []
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                raise MalformedRecordError(f"Record at position {position} is not an object")
            result: Dict[str, Any] = {'id': item.get('id', position + 1)}
            try:
                result['reorder_probability'] = round(orchestrator.predict(item), 3)
            except MalformedRecordError as e:
                result['error'] = str(e)
            results.append(result)

        classifier = orchestrator.snapshot().classifier
        return jsonify({
            'predictions': results,
            'model_version': classifier.version if classifier else None,
        })

    return app


def main():
    """Entry point for the reorder-risk service."""
    parser = argparse.ArgumentParser(description='Serve reorder-risk predictions over HTTP')
    parser.add_argument('--host', type=str, default='0.0.0.0', help='Bind address')
    parser.add_argument('--port', type=int, default=5001, help='Bind port')
    parser.add_argument('--catalog-url', type=str, default=None, help='Catalog API URL')
    parser.add_argument('--use-mock-data', action='store_true',
                        help='Skip the catalog API and serve synthetic products')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for synthetic data')
    parser.add_argument('--load-on-start', action='store_true',
                        help='Load the catalog as soon as the service starts')

    args = parser.parse_args()

    settings = PipelineSettings.from_env().override(catalog_url=args.catalog_url, random_seed=args.seed)
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    accessor = None
    if not args.use_mock_data:
        accessor = HttpCatalogAccessor(
            settings.catalog_url,
            per_page=settings.catalog_per_page,
            timeout=settings.catalog_timeout,
        )

    orchestrator = PipelineOrchestrator(PipelineState(), accessor, settings)
    runner = PipelineRunner(orchestrator)
    app = create_app(orchestrator, runner)

    if args.load_on_start:
        runner.start_catalog_load()

    try:
        app.run(host=args.host, port=args.port, debug=False, use_reloader=False)
    finally:
        runner.stop()


if __name__ == '__main__':
    main()
