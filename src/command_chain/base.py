"""
Base command interface for the chain execution engine.

This module defines the core abstractions:
- Outcome constants returned by `execute` and `postprocess`
- Command: Abstract base class for every executable unit
- Filter: A Command that also post-processes during chain unwind
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .context import Context

# Outcomes of Command.execute
CONTINUE_PROCESSING = False
PROCESSING_COMPLETE = True

# Outcomes of Filter.postprocess
CONTINUE_PROPAGATION = False
STOP_PROPAGATION = True


class Command(ABC):
    """
    Base abstract class for all commands.

    A command receives the shared context, does its work (usually by reading
    and writing context entries) and tells the enclosing chain whether
    processing is complete:

    - False (CONTINUE_PROCESSING): run the next command in the chain
    - True (PROCESSING_COMPLETE): stop the chain's forward pass

    Failures are signalled by raising, never by the return value.

    Configuration attributes live in `config` and are described by
    `get_config_schema()`. The assembler only sets properties named in that
    schema, so every configurable command must declare them.

    Example:
        >>> class GreetCommand(Command):
        ...     def get_config_schema(self):
        ...         return {"required": {"who": {"type": "str", "description": "Name"}}}
        ...
        ...     def execute(self, context):
        ...         context["greeting"] = f"Hello {self.config['who']}"
        ...         return CONTINUE_PROCESSING
    """

    def __init__(self, name: Optional[str] = None, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the command.

        Args:
            name: Name of the command (its catalog id when it has one)
            config: Configuration dictionary for the command
        """
        self.name = name
        self.config = config or {}

    def get_config_schema(self) -> Dict[str, Any]:
        """
        Return the configuration schema for this command.

        Returns:
            Dict with 'required' and 'optional' keys. Each contains param
            definitions with 'type' ('str', 'int', 'float' or 'bool'),
            'description', and optionally 'default' and 'example'.

        Example:
            {
                'required': {},
                'optional': {
                    'to_key': {
                        'type': 'str',
                        'description': 'Context key to write',
                        'example': 'result'
                    }
                }
            }
        """
        return {"required": {}, "optional": {}}

    def get_description(self) -> str:
        """
        Return a brief description of what this command does.

        Default implementation uses the class docstring's first line.
        """
        doc = self.__class__.__doc__
        if doc:
            return doc.strip().split("\n")[0]
        return f"{self.__class__.__name__} command"

    def configure(self, key: str, value: Any):
        """Store a single configuration attribute."""
        self.config[key] = value

    def get_config_value(self, key: str) -> Any:
        """Return a configured value, falling back to the schema default."""
        if key in self.config:
            return self.config[key]
        schema = self.get_config_schema()
        for section in ("required", "optional"):
            param = schema.get(section, {}).get(key)
            if param is not None:
                return param.get("default")
        return None

    @abstractmethod
    def execute(self, context: Context) -> bool:
        """
        Execute the command.

        Args:
            context: Shared execution context

        Returns:
            True if processing is complete and the enclosing chain must stop,
            False to let the chain continue with the next command.
        """
        pass

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name})>"


class Filter(Command):
    """
    A command with post-processing.

    When a filter's `execute` has been called as part of a chain, the chain
    calls `postprocess` once during unwind, whether the forward pass ended
    normally, by short-circuit or by an exception. Filters are unwound in
    reverse order of execution.
    """

    @abstractmethod
    def postprocess(self, context: Context, exception: Optional[Exception]) -> bool:
        """
        Post-process after the chain's forward pass.

        Args:
            context: Shared execution context
            exception: The exception in flight, or None

        Returns:
            True (STOP_PROPAGATION) if the exception has been handled and
            must not reach the caller, False (CONTINUE_PROPAGATION) otherwise.
        """
        pass
