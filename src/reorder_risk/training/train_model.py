"""
Command-line training run for the reorder-risk classifier.

Loads the catalog (or synthetic products), trains once, and prints the
training metrics and per-product predictions.

Usage:
    reorder-risk-train --catalog-url http://localhost:8082/api/products
    reorder-risk-train --use-mock-data --epochs 200 --seed 7
"""

import argparse
import asyncio
import json
import logging

import pandas as pd

from ..catalog.accessor import HttpCatalogAccessor
from ..config import PipelineSettings
from ..errors import PipelineError
from ..pipeline.orchestrator import PipelineOrchestrator
from ..pipeline.state import PipelineState

logger = logging.getLogger(__name__)


async def run_training(orchestrator: PipelineOrchestrator, options: dict) -> pd.DataFrame:
    """Load, train and return the predictions table."""
    await orchestrator.load_catalog()
    await orchestrator.train(options)
    return pd.DataFrame([p.to_dict() for p in orchestrator.predict_catalog()])


def main():
    """Main entry point for a one-off training run."""
    parser = argparse.ArgumentParser(description='Train the reorder-risk classifier')
    parser.add_argument('--catalog-url', type=str, default=None, help='Catalog API URL')
    parser.add_argument('--use-mock-data', action='store_true',
                        help='Train on synthetic products')
    parser.add_argument('--epochs', type=int, default=None, help='Training epochs')
    parser.add_argument('--learning-rate', type=float, default=None, help='Optimizer learning rate')
    parser.add_argument('--options', type=str, default=None,
                        help='Training options as a JSON object (e.g. \'{"hiddenLayers": [{"units": 16}]}\')')
    parser.add_argument('--seed', type=int, default=None, help='Random seed')

    args = parser.parse_args()

    settings = PipelineSettings.from_env().override(catalog_url=args.catalog_url, random_seed=args.seed)
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        options = json.loads(args.options) if args.options else {}
    except json.JSONDecodeError as e:
        parser.error(f'--options is not valid JSON: {e}')
    if not isinstance(options, dict):
        parser.error('--options must be a JSON object')
    if args.epochs is not None:
        options['epochs'] = args.epochs
    if args.learning_rate is not None:
        options['learningRate'] = args.learning_rate
    if settings.random_seed is not None:
        options.setdefault('randomState', settings.random_seed)

    accessor = None
    if not args.use_mock_data:
        accessor = HttpCatalogAccessor(
            settings.catalog_url,
            per_page=settings.catalog_per_page,
            timeout=settings.catalog_timeout,
        )
    orchestrator = PipelineOrchestrator(PipelineState(), accessor, settings)

    try:
        predictions = asyncio.run(run_training(orchestrator, options))
    except PipelineError as e:
        logger.error(f"Training run failed: {e}")
        raise SystemExit(1)

    snapshot = orchestrator.snapshot()
    metrics = snapshot.classifier.metrics

    # Print summary
    print("\n" + "="*50)
    print("Training Complete")
    print("="*50)
    print(f"Model Version: {snapshot.classifier.version}")
    print(f"Catalog: {len(snapshot.records)} products{' (degraded mode)' if snapshot.degraded else ''}")
    print("\nMetrics:")
    print(f"  Loss: {metrics.final_loss:.4f}")
    print(f"  Accuracy: {metrics.accuracy:.4f}")
    print(f"  Reorder share: {metrics.positive_rate:.2%}")
    print(f"  Duration: {metrics.duration_seconds:.2f}s")
    print("\nPredictions:")
    print(predictions.to_string(index=False))


if __name__ == '__main__':
    main()
