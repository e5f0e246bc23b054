"""Orchestrator package - runs the out command."""
from .core import PublishOrchestrator
from .file_collector import FileCollector

__all__ = ["PublishOrchestrator", "FileCollector"]
