"""BDD tests for batch delivery and metric payloads."""

import pytest
from pytest_bdd import scenarios

# Load all delivery feature scenarios
scenarios(".")

pytestmark = [
    pytest.mark.tier(2),
    pytest.mark.tra("Output.Delivery"),
]
