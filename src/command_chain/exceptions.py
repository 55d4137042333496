"""
Exception classes for Command Chain.

All exceptions include:
- Descriptive messages with context
- `to_dict()` method for structured JSON output
- Fuzzy-matched suggestions where applicable

Errors raised by a command's own logic are never wrapped: a chain re-raises
the very exception object it caught, so callers can rely on its identity.
"""

from difflib import get_close_matches
from typing import Any, Dict, List, Optional


class ChainError(Exception):
    """
    Base exception for all Command Chain errors.

    Example:
        >>> try:
        ...     catalog.lookup("Execute2a").execute(context)
        ... except ChainError as e:
        ...     print(e.to_dict())
    """

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to JSON-serializable dict for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class ExecutionError(ChainError):
    """
    Raised by a command when its own logic fails during `execute`.

    Commands are free to raise any exception; this class is offered for
    commands that want a library error carrying the failing command's name.

    Attributes:
        message: Human-readable error message
        command_name: Name of the command that failed
    """

    def __init__(self, message: str, command_name: Optional[str] = None):
        self.message = message
        self.command_name = command_name
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "EXECUTION_ERROR",
            "message": self.message,
            "command": self.command_name,
        }


class NotFoundError(ChainError):
    """
    Raised when a name cannot be found in a registry or catalog.

    Includes fuzzy-matched suggestions to help identify typos.

    Attributes:
        name: The unknown name that was requested
        valid_names: List of all valid names
        suggestions: Fuzzy-matched similar names
    """

    kind = "name"
    code = "NOT_FOUND"

    def __init__(self, name: str, valid_names: List[str]):
        self.name = name
        self.valid_names = valid_names
        self.suggestions = get_close_matches(
            name.lower(),
            [n.lower() for n in valid_names],
            n=3,
            cutoff=0.5,
        )
        # Map back to original case
        self.suggestions = [n for n in valid_names if n.lower() in self.suggestions]

        message = f"Unknown {self.kind}: '{name}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"

        if valid_names:
            sorted_names = sorted(valid_names)[:10]
            message += f"\nAvailable: {', '.join(sorted_names)}"
            if len(valid_names) > 10:
                message += f" ... ({len(valid_names) - 10} more)"

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "name": self.name,
            "suggestions": self.suggestions,
            "valid_names": sorted(self.valid_names),
        }


class CommandNotFoundError(NotFoundError):
    """
    Raised when a catalog lookup names an unregistered command.

    Example:
        >>> catalog.lookup("Exectue2a")
        CommandNotFoundError: Unknown command: 'Exectue2a'.
        Did you mean: Execute2a?
    """

    kind = "command"
    code = "COMMAND_NOT_FOUND"


class UnknownCommandTypeError(NotFoundError):
    """Raised when an implementation reference is not known to the registry."""

    kind = "command type"
    code = "UNKNOWN_COMMAND_TYPE"


class DuplicateNameError(ChainError):
    """
    Raised when registering a name that is already taken in a catalog.

    Attributes:
        name: The duplicated name
        catalog_name: Name of the catalog that rejected it
    """

    def __init__(self, name: str, catalog_name: Optional[str] = None):
        self.name = name
        self.catalog_name = catalog_name

        message = f"Command '{name}' is already registered"
        if catalog_name:
            message += f" in catalog '{catalog_name}'"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "DUPLICATE_NAME",
            "name": self.name,
            "catalog": self.catalog_name,
        }


class ConfigurationError(ChainError):
    """
    Raised when assembling commands, chains or catalogs fails.

    Covers unresolved references, unknown properties, instantiation
    failures and malformed directive nesting.

    Attributes:
        message: Error description
        command_name: Name of the misconfigured command
        config_schema: The expected configuration schema
        provided_config: The invalid configuration that was provided

    Example:
        >>> raise ConfigurationError(
        ...     "Unknown property: 'colour'",
        ...     command_name="Configurable",
        ...     config_schema={"optional": {"foo": {...}}},
        ...     provided_config={"colour": "red"}
        ... )
    """

    def __init__(
        self,
        message: str,
        command_name: Optional[str] = None,
        config_schema: Optional[Dict[str, Any]] = None,
        provided_config: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.command_name = command_name
        self.config_schema = config_schema
        self.provided_config = provided_config

        full_message = message
        if command_name:
            full_message = f"[{command_name}] {message}"

        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "CONFIGURATION_ERROR",
            "message": self.message,
            "command": self.command_name,
            "config_schema": self.config_schema,
            "provided_config": self.provided_config,
        }


class ChainFrozenError(ChainError):
    """Raised when a command is added to a chain that has already executed."""

    def __init__(self, chain_name: Optional[str] = None):
        self.chain_name = chain_name
        label = f"'{chain_name}'" if chain_name else "(unnamed)"
        super().__init__(
            f"Chain {label} has already been executed; commands can no longer be added"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "CHAIN_FROZEN",
            "chain": self.chain_name,
        }
