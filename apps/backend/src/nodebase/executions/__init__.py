"""Node executors and the registry that dispatches to them."""

from .http_request import HttpRequestExecutor
from .registry import ExecutorRegistry, build_registry
from .triggers import google_form_trigger_executor, manual_trigger_executor, stripe_trigger_executor

__all__ = [
    "ExecutorRegistry",
    "HttpRequestExecutor",
    "build_registry",
    "google_form_trigger_executor",
    "manual_trigger_executor",
    "stripe_trigger_executor",
]
