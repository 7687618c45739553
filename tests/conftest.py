# --run-redundant enables long decompositions with many iterations.
# See https://docs.pytest.org/en/latest/example/simple.html#control-skipping-of-tests-according-to-command-line-option

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-redundant",
        action="store_true",
        default=False,
        help="Run redandant tests with many iterations.",
    )


def pytest_configure(config):
    pytest.run_redundant = config.getoption("--run-redundant")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-redundant"):
        pytest.run_redundant = True
