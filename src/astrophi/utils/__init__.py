"""Utility modules for astrophi."""

from astrophi.utils.executor import run_blocking
from astrophi.utils.shutter import parse_shutter

__all__ = ["parse_shutter", "run_blocking"]
