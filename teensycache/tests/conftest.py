"""Module that adds flags to pytest to enable certain extra tests."""

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--stress",
        action="store_true",
        default=False,
        help="Run concurrency stress tests",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "stress: mark test as a slow stress test")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--stress"):
        skip_stress = pytest.mark.skip(reason="only runs with --stress option")

        for item in items:
            if "stress" in item.keywords:
                item.add_marker(skip_stress)
