"""BDD step definitions for delivery features."""

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from pytest_bdd import given, parsers, then, when

from hecshipper.adapters.metrics.in_memory import InMemoryMetricsRegistry
from hecshipper.core.metrics import RECORDS_COUNTER, STATUS_COUNTER
from hecshipper.core.models import DeliveryOutcome
from hecshipper.output import HecOutput
from tests.helpers import DEFAULT_HOST, TEST_HOST, TEST_TOKEN, RecordingEndpoint


@dataclass
class DeliveryScenarioContext:
    """State shared between the steps of one scenario."""

    options: dict[str, Any] = field(
        default_factory=lambda: {"hec_host": TEST_HOST, "hec_token": TEST_TOKEN}
    )
    endpoint: RecordingEndpoint = field(default_factory=RecordingEndpoint)
    registry: InMemoryMetricsRegistry = field(default_factory=InMemoryMetricsRegistry)
    output: HecOutput | None = None
    outcome: DeliveryOutcome | None = None

    def started_output(self) -> HecOutput:
        if self.output is None:
            self.output = HecOutput.configure(
                self.options,
                metrics_sink=self.registry,
                transport=self.endpoint.transport,
                default_host=DEFAULT_HOST,
            )
            self.output.start()
        return self.output

    @property
    def labels(self) -> dict[str, str]:
        assert self.output is not None
        return {"type": "splunk_hec", "plugin_id": self.output.plugin_id}

    def sent_lines(self) -> list[dict[str, Any]]:
        return [
            json.loads(line)
            for request in self.endpoint.requests
            for line in request.content.splitlines()
        ]


@pytest.fixture
def ctx() -> Iterator[DeliveryScenarioContext]:
    """Fresh scenario context for each test."""
    context = DeliveryScenarioContext()
    yield context
    if context.output is not None:
        context.output.shutdown()


# === Configuration Steps ===
@given("an output configured with hec_host and hec_token")
def step_default_output(ctx: DeliveryScenarioContext) -> None:
    assert "hec_host" in ctx.options


@given("4xx responses are not consumed")
def step_not_consumed(ctx: DeliveryScenarioContext) -> None:
    ctx.options["consume_chunk_on_4xx_errors"] = False


@given("an output in metric mode")
def step_metric_mode(ctx: DeliveryScenarioContext) -> None:
    ctx.options["data_type"] = "metric"


@given(
    parsers.parse(
        'an output in metric mode reading metric_name_key "{name_key}" '
        'and metric_value_key "{value_key}"'
    )
)
def step_explicit_metric_mode(
    ctx: DeliveryScenarioContext, name_key: str, value_key: str
) -> None:
    ctx.options.update(
        data_type="metric", metric_name_key=name_key, metric_value_key=value_key
    )


# === Endpoint Steps ===
@given(parsers.parse("the endpoint responds with status {status:d}"))
def step_endpoint_status(ctx: DeliveryScenarioContext, status: int) -> None:
    ctx.endpoint.statuses = [status]


@given("the endpoint refuses connections")
def step_endpoint_refuses(ctx: DeliveryScenarioContext) -> None:
    ctx.endpoint.error = httpx.ConnectError("connection refused")


# === Write Steps ===
@when(parsers.parse("a batch of {n:d} records is written"))
def step_write_batch(ctx: DeliveryScenarioContext, n: int) -> None:
    output = ctx.started_output()
    chunk = [output.format("app.web", 1.0, {"message": f"record {i}"}) for i in range(n)]
    ctx.outcome = output.write(chunk)


@when(parsers.parse("a batch of {n:d} records and {blank:d} blank records is written"))
def step_write_batch_with_blanks(
    ctx: DeliveryScenarioContext, n: int, blank: int
) -> None:
    output = ctx.started_output()
    chunk = [output.format("app.web", 1.0, {"message": f"record {i}"}) for i in range(n)]
    chunk += [output.format("app.web", 1.0, {}) for _ in range(blank)]
    ctx.outcome = output.write(chunk)


@when(parsers.parse('the record {record} is written with tag "{tag}"'))
def step_write_record(ctx: DeliveryScenarioContext, record: str, tag: str) -> None:
    ctx.outcome = ctx.started_output().emit(tag, [(1.0, json.loads(record))])


# === Outcome Steps ===
@then(parsers.parse('the outcome is "{name}"'))
def step_outcome(ctx: DeliveryScenarioContext, name: str) -> None:
    assert type(ctx.outcome).__name__ == name


@then(parsers.parse("the records counter is {n:d}"))
def step_records_counter(ctx: DeliveryScenarioContext, n: int) -> None:
    assert ctx.registry.counter_value(RECORDS_COUNTER.name, ctx.labels) == n


@then(parsers.parse('the status counter for "{status}" is {n:d}'))
def step_status_counter(ctx: DeliveryScenarioContext, status: str, n: int) -> None:
    labels = {**ctx.labels, "status": status}
    assert ctx.registry.counter_value(STATUS_COUNTER.name, labels) == n


@then("no request reached the endpoint")
def step_no_request(ctx: DeliveryScenarioContext) -> None:
    assert ctx.endpoint.requests == []


# === Payload Steps ===
@then(parsers.parse("the endpoint received {n:d} payload lines"))
def step_line_count(ctx: DeliveryScenarioContext, n: int) -> None:
    assert len(ctx.sent_lines()) == n


@then(parsers.parse('every line has event "{event}"'))
def step_every_event(ctx: DeliveryScenarioContext, event: str) -> None:
    assert all(line["event"] == event for line in ctx.sent_lines())


@then(parsers.parse('the metric names are "{names}"'))
def step_metric_names(ctx: DeliveryScenarioContext, names: str) -> None:
    sent = [line["fields"]["metric_name"] for line in ctx.sent_lines()]
    assert sent == names.split(",")


@then(parsers.parse('the first line has dimension "{key}" equal to "{value}"'))
def step_dimension(ctx: DeliveryScenarioContext, key: str, value: str) -> None:
    assert ctx.sent_lines()[0]["fields"][key] == value
