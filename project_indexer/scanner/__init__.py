"""Scanner module exports."""

from .base import BaseScanner, ScanResult
from .typescript import TypeScriptScanner

__all__ = [
    "BaseScanner",
    "ScanResult",
    "TypeScriptScanner",
]
