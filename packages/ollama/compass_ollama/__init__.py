"""Local Ollama daemon status and model operations."""

from .models import ErrorInfo, ModelOperation, OllamaModel, OllamaStatus, ProcessInfo
from .monitor import OllamaMonitor, categorize_error, ollama_process_info

__all__ = [
    "ErrorInfo",
    "ModelOperation",
    "OllamaModel",
    "OllamaMonitor",
    "OllamaStatus",
    "ProcessInfo",
    "categorize_error",
    "ollama_process_info",
]
