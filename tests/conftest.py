import pytest

from command_chain import CatalogFactory, CommandRegistry

from doubles import register_doubles


@pytest.fixture
def registry():
    """A registry holding the built-in commands and the test doubles."""
    return register_doubles(CommandRegistry())


@pytest.fixture
def factory():
    """A fresh, empty catalog factory."""
    factory = CatalogFactory()
    yield factory
    factory.clear()
