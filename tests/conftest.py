"""
Pytest configuration and fixtures for Kestrel tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from kestrel.configuration.app_configuration import AppConfig  # noqa: E402


@pytest.fixture()
def app_config_factory(tmp_path: Path):
    """Build an AppConfig from a YAML string written to a temporary file."""

    def build(text: str = "") -> AppConfig:
        path = tmp_path / "app_config.yml"
        path.write_text(text, encoding="utf-8")
        return AppConfig(path)

    return build


@pytest.fixture()
def empty_config(tmp_path: Path) -> AppConfig:
    return AppConfig(tmp_path / "missing.yml")

