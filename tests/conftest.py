"""Shared test fixtures for all test modules."""

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from hecshipper.adapters.metrics.in_memory import InMemoryMetricsRegistry
from hecshipper.config import HecSettings, load_settings
from hecshipper.core.encoding.utf8 import Utf8Sanitizer
from hecshipper.core.transform import PayloadTransformer
from hecshipper.output import HecOutput
from tests.helpers import DEFAULT_HOST, TEST_HOST, TEST_TOKEN, RecordingEndpoint


@pytest.fixture
def endpoint() -> RecordingEndpoint:
    """A fake endpoint that answers 200 until told otherwise."""
    return RecordingEndpoint()


@pytest.fixture
def registry() -> InMemoryMetricsRegistry:
    """Fresh in-memory metrics registry."""
    return InMemoryMetricsRegistry()


@pytest.fixture
def make_settings() -> Callable[..., HecSettings]:
    """Factory for settings with a host and token already filled in."""

    def _make(**overrides: Any) -> HecSettings:
        raw: dict[str, Any] = {"hec_host": TEST_HOST, "hec_token": TEST_TOKEN}
        raw.update(overrides)
        return load_settings(raw)

    return _make


@pytest.fixture
def make_output(
    make_settings: Callable[..., HecSettings],
    endpoint: RecordingEndpoint,
    registry: InMemoryMetricsRegistry,
) -> Iterator[Callable[..., HecOutput]]:
    """Factory for started outputs wired to the fake endpoint and registry."""
    outputs: list[HecOutput] = []

    def _make(**overrides: Any) -> HecOutput:
        output = HecOutput(
            make_settings(**overrides),
            metrics_sink=registry,
            transport=endpoint.transport,
            default_host=DEFAULT_HOST,
        )
        output.start()
        outputs.append(output)
        return output

    yield _make
    for output in outputs:
        output.shutdown()


@pytest.fixture
def make_transformer() -> Callable[..., PayloadTransformer]:
    """Factory for transformers without formatters, using DEFAULT_HOST."""

    def _make(
        accessors: dict[str, Any] | None = None, **kwargs: Any
    ) -> PayloadTransformer:
        kwargs.setdefault("sanitizer", Utf8Sanitizer())
        return PayloadTransformer(accessors or {}, default_host=DEFAULT_HOST, **kwargs)

    return _make
