"""
Command Chain - A chain-of-responsibility execution engine.

This library provides named, composable commands that are linked into
ordered chains and executed against a shared mutable context. Chains and
catalogs can be assembled declaratively from a directive stream or a JSON
document, with forward references between components.

Basic Usage:
    >>> from command_chain import Chain, Context, CopyCommand
    >>>
    >>> chain = Chain(name="example")
    >>> chain.add_command(CopyCommand(config={"from_key": "in", "to_key": "out"}))
    >>>
    >>> context = Context({"in": 42})
    >>> chain.execute(context)  # False: every command asked to continue
    >>> context["out"]
    42

Declarative assembly:
    >>> from command_chain import Assembler, CatalogFactory, DocumentParser
    >>>
    >>> factory = CatalogFactory()
    >>> Assembler(factory).assemble(DocumentParser.from_json(document))
    >>> factory.get_catalog("foo").lookup("Execute2a").execute(Context())

Key Concepts:
    - **Command**: A unit of work; returns True to stop the chain, False to continue
    - **Filter**: A command post-processed during unwind, even after an exception
    - **Chain**: An ordered list of commands that is itself a command
    - **Catalog**: Named commands; **CatalogFactory**: named catalogs
    - **Assembler**: Builds catalogs from directives
"""

from .base import (
    Command,
    Filter,
    CONTINUE_PROCESSING,
    PROCESSING_COMPLETE,
    CONTINUE_PROPAGATION,
    STOP_PROPAGATION,
)
from .context import Context
from .chain import Chain, ChainState
from .catalog import Catalog, CatalogFactory, DEFAULT_CATALOG_NAME
from .commands import CopyCommand, RemoveCommand, LogContextCommand, LookupCommand
from .registry import CommandRegistry, get_registry, register_command
from .directives import (
    BeginCatalog,
    EndCatalog,
    DefineCommand,
    BeginChain,
    EndChain,
    SetProperty,
)
from .assembler import Assembler
from .parser import DocumentParser
from .exceptions import (
    ChainError,
    ExecutionError,
    NotFoundError,
    CommandNotFoundError,
    UnknownCommandTypeError,
    DuplicateNameError,
    ConfigurationError,
    ChainFrozenError,
)

__version__ = "0.1.0"

__all__ = [
    # Core types
    "Command",
    "Filter",
    "Context",
    "Chain",
    "ChainState",
    "CONTINUE_PROCESSING",
    "PROCESSING_COMPLETE",
    "CONTINUE_PROPAGATION",
    "STOP_PROPAGATION",
    # Catalogs
    "Catalog",
    "CatalogFactory",
    "DEFAULT_CATALOG_NAME",
    # Built-in commands
    "CopyCommand",
    "RemoveCommand",
    "LogContextCommand",
    "LookupCommand",
    # Registry
    "CommandRegistry",
    "get_registry",
    "register_command",
    # Assembly
    "Assembler",
    "DocumentParser",
    "BeginCatalog",
    "EndCatalog",
    "DefineCommand",
    "BeginChain",
    "EndChain",
    "SetProperty",
    # Exceptions
    "ChainError",
    "ExecutionError",
    "NotFoundError",
    "CommandNotFoundError",
    "UnknownCommandTypeError",
    "DuplicateNameError",
    "ConfigurationError",
    "ChainFrozenError",
]
