"""Shared fixtures for the test suite."""

import pytest

from src.config import BankConfig, load_selectors
from tests.helpers import SELECTORS_PATH


@pytest.fixture
def selectors():
    return load_selectors(SELECTORS_PATH)


@pytest.fixture
def bank_config():
    return BankConfig(
        customerId="12345678",
        password="hunter2",
        headless=True,
        secureAccess=False,
        accounts=["Savings", "Salary"],
    )
