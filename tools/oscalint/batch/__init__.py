"""
Batch processing for oscalint

Validates or converts many OSCAL files as one operation.
"""

from .runner import BatchOperationResult, BatchRunner, FileContent, FileOutcome, FileResult
from .operations import BatchOperationRequest, BatchOperationType, build_operation

__all__ = [
    'BatchOperationResult',
    'BatchRunner',
    'FileContent',
    'FileOutcome',
    'FileResult',
    'BatchOperationRequest',
    'BatchOperationType',
    'build_operation'
]
