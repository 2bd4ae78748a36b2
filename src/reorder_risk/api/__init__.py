# ML API Module
"""
HTTP presentation adapter for the reorder-risk pipeline.
"""

from .ml_service import PipelineRunner, create_app

__all__ = ['PipelineRunner', 'create_app']
