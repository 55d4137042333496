"""
Generic commands shipped with the library.

- CopyCommand: copy a context value (or a literal) to another key
- RemoveCommand: remove a key from the context
- LogContextCommand: log a context value
- LookupCommand: look a command up in a catalog and delegate to it

All of them return False (continue) unless documented otherwise.
"""

from typing import Any, Dict, Optional
import logging

from .base import Command, Filter, CONTINUE_PROCESSING, CONTINUE_PROPAGATION
from .context import Context
from .exceptions import ExecutionError

logger = logging.getLogger("command_chain")


class CopyCommand(Command):
    """
    Copy a context value, or a literal value, to another context key.

    When neither `value` nor a value under `from_key` is available, `to_key`
    is removed from the context.
    """

    def get_config_schema(self) -> Dict[str, Any]:
        return {
            "required": {
                "to_key": {
                    "type": "str",
                    "description": "Context key to write",
                    "example": "result",
                }
            },
            "optional": {
                "from_key": {
                    "type": "str",
                    "description": "Context key to read",
                    "example": "input",
                },
                "value": {
                    "type": "str",
                    "description": "Literal value to store instead of reading from_key",
                    "example": "N/A",
                },
            },
        }

    def execute(self, context: Context) -> bool:
        to_key = self.config.get("to_key")
        value = self.config.get("value")
        if value is None:
            from_key = self.config.get("from_key")
            value = context.get(from_key) if from_key else None

        if value is not None:
            context[to_key] = value
        else:
            context.pop(to_key, None)
        return CONTINUE_PROCESSING


class RemoveCommand(Command):
    """
    Remove a key from the context.
    """

    def get_config_schema(self) -> Dict[str, Any]:
        return {
            "required": {
                "from_key": {
                    "type": "str",
                    "description": "Context key to remove",
                    "example": "scratch",
                }
            },
            "optional": {},
        }

    def execute(self, context: Context) -> bool:
        context.pop(self.config.get("from_key"), None)
        return CONTINUE_PROCESSING


class LogContextCommand(Command):
    """
    Log a context value for debugging.
    """

    def get_config_schema(self) -> Dict[str, Any]:
        return {
            "required": {},
            "optional": {
                "key": {
                    "type": "str",
                    "description": "Context key to log; the whole context when omitted",
                    "example": "log",
                },
                "level": {
                    "type": "str",
                    "description": "Log level: debug, info, warning, or error",
                    "default": "info",
                    "example": "debug",
                },
                "message": {
                    "type": "str",
                    "description": "Optional message prefix",
                    "example": "Processing",
                },
            },
        }

    def execute(self, context: Context) -> bool:
        key = self.config.get("key")
        level = self.config.get("level", "info").lower()
        message = self.config.get("message", self.name or type(self).__name__)

        value = context.get(key) if key else dict(context)
        log_message = f"{message}: {value}"

        if level == "debug":
            logger.debug(log_message)
        elif level == "warning":
            logger.warning(log_message)
        elif level == "error":
            logger.error(log_message)
        else:  # info
            logger.info(log_message)
        return CONTINUE_PROCESSING


class LookupCommand(Filter):
    """
    Look up a command in a catalog and delegate to it.

    The command name is either fixed (`command`) or read from the context
    (`name_key`). The catalog comes from the CatalogFactory bound by the
    assembler (or passed to the constructor); `catalog` selects a catalog by
    name, the default catalog otherwise.

    When `optional` is true a missing catalog or command is skipped with a
    warning instead of raising.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        catalog_factory=None,
    ):
        super().__init__(name=name, config=config)
        self.catalog_factory = catalog_factory

    def bind_catalog_factory(self, catalog_factory):
        """Set the factory used to find catalogs."""
        self.catalog_factory = catalog_factory

    def get_config_schema(self) -> Dict[str, Any]:
        return {
            "required": {},
            "optional": {
                "catalog": {
                    "type": "str",
                    "description": "Catalog to search; the default catalog when omitted",
                    "example": "foo",
                },
                "command": {
                    "type": "str",
                    "description": "Name of the command to delegate to",
                    "example": "Execute2a",
                },
                "name_key": {
                    "type": "str",
                    "description": "Context key holding the command name, used when 'command' is not set",
                    "example": "command_name",
                },
                "optional": {
                    "type": "bool",
                    "description": "Skip instead of failing when the command cannot be found",
                    "default": False,
                },
                "ignore_execute_result": {
                    "type": "bool",
                    "description": "Always return False from execute",
                    "default": False,
                },
                "ignore_postprocess_result": {
                    "type": "bool",
                    "description": "Always return False from postprocess",
                    "default": False,
                },
            },
        }

    def _command_name(self, context: Context) -> Optional[str]:
        name = self.config.get("command")
        if not name:
            name_key = self.config.get("name_key")
            if name_key:
                name = context.get(name_key)
        return name

    def _find_command(self, context: Context) -> Optional[Command]:
        optional = self.get_config_value("optional")

        if self.catalog_factory is None:
            raise ExecutionError(
                f"{self.name}: no catalog factory is bound", command_name=self.name
            )

        catalog_name = self.config.get("catalog")
        if not self.catalog_factory.has_catalog(catalog_name):
            if optional:
                logger.warning(f"{self.name}: catalog '{catalog_name}' not found, skipping")
                return None
            raise ExecutionError(
                f"{self.name}: catalog '{catalog_name}' not found", command_name=self.name
            )
        catalog = self.catalog_factory.get_catalog(catalog_name)

        name = self._command_name(context)
        if not name:
            raise ExecutionError(
                f"{self.name}: no command name configured or found in the context",
                command_name=self.name,
            )

        if optional:
            command = catalog.get(name)
            if command is None:
                logger.warning(f"{self.name}: command '{name}' not found, skipping")
            return command
        return catalog.lookup(name)

    def execute(self, context: Context) -> bool:
        command = self._find_command(context)
        if command is None:
            return CONTINUE_PROCESSING

        result = command.execute(context)
        if self.get_config_value("ignore_execute_result"):
            return CONTINUE_PROCESSING
        return result

    def postprocess(self, context: Context, exception: Optional[Exception]) -> bool:
        command = self._find_command(context)
        if not isinstance(command, Filter):
            return CONTINUE_PROPAGATION

        result = command.postprocess(context, exception)
        if self.get_config_value("ignore_postprocess_result"):
            return CONTINUE_PROPAGATION
        return result
