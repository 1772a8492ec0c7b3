"""Pytest configuration for scripts tests.

Scripts are standalone files rather than package modules, so they are
loaded directly from their paths.
"""

from __future__ import annotations

import importlib.util
import typing as typ
from pathlib import Path

import pytest

if typ.TYPE_CHECKING:
    import types

_SCRIPTS_DIR = Path(__file__).resolve().parents[1]


def load_script(name: str) -> types.ModuleType:
    """Load ``scripts/<name>.py`` as a module.

    Raises
    ------
    ImportError
        If the script is missing or cannot be loaded.

    """
    script_path = _SCRIPTS_DIR / f"{name}.py"
    if not script_path.exists():
        msg = f"{name}.py not found at {script_path}"
        raise ImportError(msg)
    spec = importlib.util.spec_from_file_location(f"{name}_script", script_path)
    if spec is None or spec.loader is None:
        msg = f"Could not load script from {script_path}"
        raise ImportError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="session")
def webhook_script() -> types.ModuleType:
    """Return the loaded send_test_webhook script module."""
    return load_script("send_test_webhook")
