"""
tests/conftest.py
Shared fixtures for the apigen_ts test suite.

All fixtures are session-scoped or function-scoped as appropriate.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from datetime import datetime, timezone
from typing import Any, Callable, Dict

import pytest
import yaml

from apigen_ts.linker import link_child_endpoints
from apigen_ts.model_extractor import ModelExtractor, seed_base_types
from apigen_ts.models import MetadataDocument
from apigen_ts.operation_extractor import OperationExtractor
from apigen_ts.payload import PayloadShaper
from apigen_ts.providers import StaticResourceProvider
from apigen_ts.registry import GenerationState


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
METADATA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "metadata_example.yaml"

FIXED_NOW: datetime = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Raw metadata fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_metadata_dict() -> Dict[str, Any]:
    """Load the reference metadata_example.yaml once per session and return as dict."""
    assert METADATA_EXAMPLE_PATH.exists(), (
        f"Reference metadata not found at {METADATA_EXAMPLE_PATH}. "
        "Make sure metadata_example.yaml is in the project root."
    )
    with open(METADATA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def metadata_dict(raw_metadata_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_metadata_dict)


@pytest.fixture()
def metadata_yaml_path(metadata_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the metadata dict to a temporary YAML file and return its path."""
    path = tmp_path / "metadata.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(metadata_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def metadata_document(metadata_dict: Dict[str, Any]) -> MetadataDocument:
    return MetadataDocument.model_validate(metadata_dict)


# ---------------------------------------------------------------------------
# Minimal / edge-case metadata fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_metadata_dict() -> Dict[str, Any]:
    """Two addressable resources: Post (id, title, author) and Author (id, name)."""
    return {
        "config": {
            "api_prefix": "/api",
            "output_dir": "assets/api",
        },
        "resources": [
            {
                "class": "App\\Entity\\Post",
                "fields": [
                    {"name": "id", "types": [{"builtin": "int"}]},
                    {"name": "title", "types": [{"builtin": "string"}]},
                    {
                        "name": "author",
                        "types": [{"builtin": "object", "class": "App\\Entity\\Author"}],
                    },
                ],
                "api_resources": [
                    {
                        "short_name": "Post",
                        "operations": [
                            {"type": "GetCollection", "method": "GET"},
                            {"type": "Get", "method": "GET"},
                        ],
                    }
                ],
            },
            {
                "class": "App\\Entity\\Author",
                "fields": [
                    {"name": "id", "types": [{"builtin": "int"}]},
                    {"name": "name", "types": [{"builtin": "string"}]},
                ],
                "api_resources": [
                    {
                        "short_name": "Author",
                        "operations": [{"type": "Get", "method": "GET"}],
                    }
                ],
            },
        ],
    }


@pytest.fixture()
def minimal_document(minimal_metadata_dict: Dict[str, Any]) -> MetadataDocument:
    return MetadataDocument.model_validate(minimal_metadata_dict)


# ---------------------------------------------------------------------------
# Pipeline helpers
# ---------------------------------------------------------------------------


def extract_state(document: MetadataDocument) -> GenerationState:
    """Run every pre-render phase (seed, models, operations, links, payloads)."""
    state = GenerationState()
    provider = StaticResourceProvider(document)
    seed_base_types(state.types, document.config, state.files)
    models = ModelExtractor(provider, document.config, state.types)
    models.extract_all()
    OperationExtractor(provider, document.config, state.types, state.operations, models).extract_all()
    link_child_endpoints(state.operations)
    PayloadShaper(state).shape_all()
    return state


@pytest.fixture()
def build_state() -> Callable[[Any], GenerationState]:
    """Factory: raw dict or ``MetadataDocument`` -> fully extracted ``GenerationState``."""

    def _build(source: Any) -> GenerationState:
        document = (
            source
            if isinstance(source, MetadataDocument)
            else MetadataDocument.model_validate(source)
        )
        return extract_state(document)

    return _build


@pytest.fixture()
def example_state(metadata_document: MetadataDocument) -> GenerationState:
    return extract_state(metadata_document)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Return a fresh temporary output directory."""
    out = tmp_path / "generated_output"
    out.mkdir()
    return out
