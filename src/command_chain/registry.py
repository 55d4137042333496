"""
Command Registry for resolving and instantiating command types.

The registry is the assembler's factory: it turns an implementation
reference (a registered name or an import path) into a command instance and
binds textual properties to it through the command's configuration schema.
"""

from typing import Any, Dict, List, Optional, Type
import importlib
import logging

from .base import Command, Filter
from .chain import Chain
from .commands import CopyCommand, LogContextCommand, LookupCommand, RemoveCommand
from .exceptions import ConfigurationError, UnknownCommandTypeError

logger = logging.getLogger("command_chain")

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def _convert(value: Any, expected_type: str) -> Any:
    """Convert a property value to the schema type; raises ValueError."""
    if expected_type == "any":
        return value
    if expected_type == "str":
        return value if isinstance(value, str) else str(value)
    if expected_type == "bool":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ValueError(f"'{value}' is not a boolean")
    if expected_type == "int":
        if isinstance(value, bool):
            raise ValueError(f"'{value}' is not an integer")
        return int(value)
    if expected_type == "float":
        if isinstance(value, bool):
            raise ValueError(f"'{value}' is not a number")
        return float(value)
    raise ValueError(f"unsupported property type '{expected_type}'")


class CommandRegistry:
    """
    Registry for command implementations.

    Commands are registered by name and can be instantiated and configured
    by the assembler. Provides introspection methods for discovery.

    Example:
        >>> from command_chain import get_registry
        >>> registry = get_registry()
        >>>
        >>> # Instantiate and configure a command
        >>> command = registry.instantiate("copy", name="copy_input")
        >>> registry.set_property(command, "to_key", "result")
        >>>
        >>> # Import paths work too
        >>> registry.resolve_class("command_chain.chain:Chain")
    """

    def __init__(self):
        self._commands: Dict[str, Type[Command]] = {}
        self._register_default_commands()

    def _register_default_commands(self):
        """Register all built-in commands."""
        self.register("chain", Chain)
        self.register("copy", CopyCommand)
        self.register("remove", RemoveCommand)
        self.register("log", LogContextCommand)
        self.register("lookup", LookupCommand)

    def register(self, name: str, command_class: Type[Command]):
        """
        Register a command class by name.

        Args:
            name: Name to register the command type under
            command_class: Command class (not instance)
        """
        if not (isinstance(command_class, type) and issubclass(command_class, Command)):
            raise TypeError(f"{command_class!r} is not a Command class")
        self._commands[name] = command_class
        logger.debug(f"Registered command type: {name} -> {command_class.__name__}")

    def has_command(self, name: str) -> bool:
        """Check if a command type is registered."""
        return name in self._commands

    def resolve_class(self, implementation_ref: str) -> Type[Command]:
        """
        Resolve an implementation reference to a command class.

        Args:
            implementation_ref: Registered name, 'package.module:Class' or
                'package.module.Class'

        Raises:
            UnknownCommandTypeError: If the reference is neither registered
                nor importable (includes suggestions)
        """
        if implementation_ref in self._commands:
            return self._commands[implementation_ref]

        command_class = self._import(implementation_ref)
        if command_class is None:
            raise UnknownCommandTypeError(implementation_ref, list(self._commands))
        return command_class

    @staticmethod
    def _import(implementation_ref: str) -> Optional[Type[Command]]:
        if ":" in implementation_ref:
            module_name, _, attr = implementation_ref.partition(":")
        elif "." in implementation_ref:
            module_name, _, attr = implementation_ref.rpartition(".")
        else:
            return None
        if not module_name or not attr:
            return None

        try:
            module = importlib.import_module(module_name)
        except (ImportError, TypeError, ValueError):
            return None

        command_class = getattr(module, attr, None)
        if isinstance(command_class, type) and issubclass(command_class, Command):
            return command_class
        return None

    def instantiate(self, implementation_ref: str, name: Optional[str] = None) -> Command:
        """
        Create a command instance.

        Args:
            implementation_ref: Registered name or import path
            name: Name given to the new command

        Raises:
            ConfigurationError: If the type is unknown or cannot be created
        """
        try:
            command_class = self.resolve_class(implementation_ref)
        except UnknownCommandTypeError as e:
            raise ConfigurationError(str(e), command_name=name) from e

        try:
            return command_class(name=name)
        except Exception as e:
            raise ConfigurationError(
                f"Cannot instantiate '{implementation_ref}': {e}", command_name=name
            ) from e

    def set_property(self, command: Command, name: str, value: Any):
        """
        Set a configuration property on a command.

        The property must be declared in the command's configuration schema.
        Values are converted to the declared type ('str', 'int', 'float',
        'bool').

        Raises:
            ConfigurationError: If the property is unknown or the value does
                not convert
        """
        schema = command.get_config_schema()
        params = {}
        params.update(schema.get("optional", {}))
        params.update(schema.get("required", {}))

        if name not in params:
            raise ConfigurationError(
                f"Unknown property: '{name}'",
                command_name=command.name,
                config_schema=schema,
                provided_config={name: value},
            )

        expected_type = params[name].get("type", "any")
        try:
            converted = _convert(value, expected_type)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Property '{name}' has invalid value, expected {expected_type}: {e}",
                command_name=command.name,
                config_schema=schema,
                provided_config={name: value},
            ) from e

        command.configure(name, converted)

    def check_required(self, command: Command):
        """
        Verify that every required property of a command has been set.

        Raises:
            ConfigurationError: If a required property is missing
        """
        schema = command.get_config_schema()
        missing = [p for p in schema.get("required", {}) if p not in command.config]
        if missing:
            raise ConfigurationError(
                f"Missing required config: {', '.join(repr(p) for p in missing)}",
                command_name=command.name,
                config_schema=schema,
                provided_config=dict(command.config),
            )

    def get_config_schema(self, implementation_ref: str) -> Dict[str, Any]:
        """
        Get the configuration schema for a command type.

        Raises:
            UnknownCommandTypeError: If the type is unknown
        """
        command_class = self.resolve_class(implementation_ref)
        return command_class(name=implementation_ref).get_config_schema()

    def describe_command(self, name: str) -> Dict[str, Any]:
        """
        Get detailed information about a command type.

        Returns:
            Dict with name, kind, description, config schema, and example
        """
        command_class = self.resolve_class(name)
        temp_instance = command_class(name=name)
        schema = temp_instance.get_config_schema()

        example_properties = {}
        for section in ("required", "optional"):
            for param, param_def in schema.get(section, {}).items():
                if "example" in param_def:
                    example_properties[param] = param_def["example"]

        example: Dict[str, Any] = {"class": name}
        if example_properties:
            example["properties"] = example_properties

        return {
            "name": name,
            "kind": self._kind(command_class),
            "description": temp_instance.get_description(),
            "config_schema": schema,
            "example": example,
        }

    def list_commands(self, kind: Optional[str] = None) -> List[Dict[str, str]]:
        """
        List all registered command types with brief descriptions.

        Args:
            kind: Optional filter: 'command', 'filter' or 'chain'

        Returns:
            List of dicts with name, kind, and description, sorted by name
        """
        result = []
        for name, cls in self._commands.items():
            command_kind = self._kind(cls)
            if kind and command_kind != kind:
                continue
            result.append(
                {
                    "name": name,
                    "kind": command_kind,
                    "description": self._describe_class(cls, name),
                }
            )
        return sorted(result, key=lambda x: x["name"])

    @staticmethod
    def _describe_class(command_class: Type[Command], name: str) -> str:
        try:
            return command_class(name=name).get_description()
        except Exception:
            logger.warning("Cannot instantiate command type %s for its description", name)
        doc = command_class.__doc__
        if doc:
            return doc.strip().split("\n")[0]
        return f"{command_class.__name__} command"

    @staticmethod
    def _kind(command_class: Type[Command]) -> str:
        if issubclass(command_class, Chain):
            return "chain"
        if issubclass(command_class, Filter):
            return "filter"
        return "command"


# Global registry instance
_global_registry = CommandRegistry()


def get_registry() -> CommandRegistry:
    """Get the global command registry."""
    return _global_registry


def register_command(name: str, command_class: Type[Command]):
    """
    Register a custom command type with the global registry.

    Args:
        name: Command type name
        command_class: Command class (not instance)

    Example:
        >>> from command_chain import register_command, Command
        >>>
        >>> class StampCommand(Command):
        ...     def execute(self, context):
        ...         context["stamped"] = True
        ...         return False
        >>>
        >>> register_command("stamp", StampCommand)
    """
    _global_registry.register(name, command_class)
