"""
Catalogs of named commands, and the factory that keeps them by name.

A Catalog maps command names to Command instances (chains included). A
CatalogFactory maps catalog names to Catalogs and designates one of them as
the default catalog.
"""

from typing import Any, Dict, Iterator, List, Optional
import logging

from .base import Command
from .exceptions import CommandNotFoundError, DuplicateNameError

logger = logging.getLogger("command_chain")

DEFAULT_CATALOG_NAME = "default"


class Catalog:
    """
    Named registry of commands.

    Names are unique: registering a taken name raises `DuplicateNameError`
    unless `replace=True` is passed. `names()` enumerates in registration
    order.

    Example:
        >>> catalog = Catalog("foo")
        >>> catalog.register("Execute2a", chain)
        >>> catalog.lookup("Execute2a") is chain
        True
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._commands: Dict[str, Command] = {}

    def register(self, name: str, command: Command, replace: bool = False):
        """
        Register a command under a name.

        Args:
            name: Command name, unique within this catalog
            command: Command instance
            replace: Overwrite an existing registration instead of failing

        Raises:
            DuplicateNameError: If the name is taken and replace is False
        """
        if not name:
            raise ValueError("Command name must be a non-empty string")
        if not isinstance(command, Command):
            raise TypeError(
                f"Only Command instances can be registered, not {type(command).__name__}"
            )
        if name in self._commands and not replace:
            raise DuplicateNameError(name, self.name)

        self._commands[name] = command
        logger.debug(f"Catalog {self.name}: registered {name} -> {command!r}")

    def lookup(self, name: str) -> Command:
        """
        Return the command registered under `name`.

        Raises:
            CommandNotFoundError: If nothing is registered (includes suggestions)
        """
        try:
            return self._commands[name]
        except KeyError:
            raise CommandNotFoundError(name, list(self._commands)) from None

    def get(self, name: str, default: Optional[Command] = None) -> Optional[Command]:
        """Return the command registered under `name`, or `default`."""
        return self._commands.get(name, default)

    def has_command(self, name: str) -> bool:
        """Check if a command is registered."""
        return name in self._commands

    def names(self) -> Iterator[str]:
        """
        Iterate over the registered names.

        The iterator works on a snapshot taken at call time; registrations made
        while iterating are not reflected. Call again to restart.
        """
        return iter(list(self._commands))

    def snapshot(self) -> Dict[str, Command]:
        """Return a copy of the current registrations."""
        return dict(self._commands)

    def restore(self, snapshot: Dict[str, Command]):
        """Replace the current registrations with a snapshot."""
        self._commands = dict(snapshot)

    def describe(self) -> List[Dict[str, Any]]:
        """
        List the registered commands with their type and description.

        Returns:
            List of dicts with name, class and description, in registration order
        """
        return [
            {
                "name": name,
                "class": type(command).__name__,
                "description": command.get_description(),
            }
            for name, command in self._commands.items()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[str]:
        return self.names()

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self):
        return f"<Catalog(name={self.name}, commands={len(self._commands)})>"


def _normalize(name: Optional[str]) -> str:
    """Map None, blank and 'default' to the default catalog key."""
    if name is None or not name.strip():
        return DEFAULT_CATALOG_NAME
    return name.strip()


class CatalogFactory:
    """
    Registry of catalogs keyed by name.

    The default catalog is addressed by None, by a blank name or by the
    explicit name 'default'. Catalogs are created lazily on first reference.

    A factory is an ordinary object: create one per process or per logical
    session and pass it to whatever assembles or looks up commands. `clear()`
    drops every catalog, which is mostly useful between tests.

    Example:
        >>> factory = CatalogFactory()
        >>> factory.get_catalog() is factory.get_catalog("")
        True
        >>> factory.get_command("foo.Execute2a")
    """

    # Separates a catalog name from a command name in command ids
    DELIMITER = "."

    def __init__(self):
        self._catalogs: Dict[str, Catalog] = {}

    def get_catalog(self, name: Optional[str] = None) -> Catalog:
        """
        Return the catalog called `name`, creating an empty one if needed.

        Args:
            name: Catalog name; None or blank for the default catalog
        """
        key = _normalize(name)
        catalog = self._catalogs.get(key)
        if catalog is None:
            catalog = Catalog(key)
            self._catalogs[key] = catalog
            logger.debug(f"Created catalog: {key}")
        return catalog

    def set_catalog(self, catalog: Catalog, name: Optional[str] = None):
        """Install `catalog` under `name`, replacing any existing one."""
        if not isinstance(catalog, Catalog):
            raise TypeError(f"Expected a Catalog, not {type(catalog).__name__}")
        key = _normalize(name)
        self._catalogs[key] = catalog
        logger.debug(f"Installed catalog: {key}")

    def has_catalog(self, name: Optional[str] = None) -> bool:
        """Check if a catalog exists without creating it."""
        return _normalize(name) in self._catalogs

    def remove_catalog(self, name: Optional[str] = None) -> Optional[Catalog]:
        """Remove and return a catalog, or None if there was none."""
        return self._catalogs.pop(_normalize(name), None)

    def names(self) -> Iterator[str]:
        """Iterate over the catalog names, in creation order."""
        return iter(list(self._catalogs))

    def clear(self):
        """Drop every catalog."""
        self._catalogs.clear()
        logger.debug("Cleared all catalogs")

    def get_command(self, command_id: str) -> Command:
        """
        Look up a command by id.

        Args:
            command_id: 'catalog.command', or a bare command name looked up
                in the default catalog

        Raises:
            CommandNotFoundError: If the catalog or command does not exist
        """
        command = self.resolve(command_id)
        if command is None:
            names = []
            for catalog_name, catalog in self._catalogs.items():
                prefix = "" if catalog_name == DEFAULT_CATALOG_NAME else catalog_name + self.DELIMITER
                names.extend(prefix + name for name in catalog.names())
            raise CommandNotFoundError(command_id, names)
        return command

    def resolve(self, reference: str, catalog_name: Optional[str] = None) -> Optional[Command]:
        """
        Resolve a command reference without raising.

        The reference is first looked up verbatim in `catalog_name` (the
        default catalog when None). Failing that, 'catalog.command' is split
        at the first delimiter and looked up in the named catalog, provided
        that catalog exists.

        Returns:
            The command, or None if the reference does not resolve
        """
        key = _normalize(catalog_name)
        local = self._catalogs.get(key)
        if local is not None and reference in local:
            return local.lookup(reference)

        if self.DELIMITER in reference:
            target_catalog, command_name = reference.split(self.DELIMITER, 1)
            target = self._catalogs.get(_normalize(target_catalog))
            if target is not None and command_name in target:
                return target.lookup(command_name)

        return None

    def __repr__(self):
        return f"<CatalogFactory(catalogs={list(self._catalogs)})>"
