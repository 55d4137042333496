"""
Assembler: builds commands, chains and catalogs from a directive stream.

Directives are processed in document order. Commands and chains are
created and registered as soon as they are defined, but chain membership is
wired only when the whole stream has been consumed. This lets a chain refer
to a command that is defined further down the stream, or in a catalog that
is filled later in the same run.

Any failure raises ConfigurationError and rolls the CatalogFactory back to
its state before the run: catalogs that existed get their previous
registrations back, catalogs created by the run are removed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

from .base import Command
from .catalog import CatalogFactory
from .chain import Chain
from .directives import (
    BeginCatalog,
    BeginChain,
    DefineCommand,
    EndCatalog,
    EndChain,
    SetProperty,
)
from .exceptions import ConfigurationError, DuplicateNameError
from .registry import CommandRegistry, get_registry

logger = logging.getLogger("command_chain")


@dataclass
class _Reference:
    """A chain member or alias that names a command defined elsewhere."""

    reference: str
    catalog_name: Optional[str]
    owner: str


@dataclass
class _ChainFrame:
    """A chain under construction and its members in document order."""

    chain: Chain
    catalog_name: Optional[str]
    label: str
    members: List[Union[Command, _Reference]] = field(default_factory=list)


@dataclass
class _Alias:
    """A top-level id bound to a reference."""

    id: str
    target: _Reference


class Assembler:
    """
    Populate catalogs from a stream of assembly directives.

    Example:
        >>> factory = CatalogFactory()
        >>> Assembler(factory).assemble([
        ...     BeginCatalog("foo"),
        ...     BeginChain(id="copy_then_log"),
        ...     DefineCommand(implementation_ref="copy",
        ...                   properties={"from_key": "a", "to_key": "b"}),
        ...     DefineCommand(reference="logger"),
        ...     EndChain(),
        ...     DefineCommand(id="logger", implementation_ref="log",
        ...                   properties={"key": "b"}),
        ...     EndCatalog(),
        ... ])
        >>> factory.get_catalog("foo").lookup("copy_then_log").execute(Context(a=1))
        False
    """

    def __init__(
        self,
        catalog_factory: CatalogFactory,
        registry: Optional[CommandRegistry] = None,
        replace: bool = False,
    ):
        """
        Initialize the assembler.

        Args:
            catalog_factory: Factory whose catalogs are populated
            registry: Resolves implementation references; the global
                registry when omitted
            replace: Overwrite commands already registered under the same
                name instead of failing
        """
        self.catalog_factory = catalog_factory
        self.registry = registry or get_registry()
        self.replace = replace

    def assemble(self, directives: Iterable[Any]) -> CatalogFactory:
        """
        Consume a directive stream and register the resulting commands.

        Args:
            directives: BeginCatalog, EndCatalog, DefineCommand, BeginChain,
                EndChain and SetProperty objects in document order

        Returns:
            The populated CatalogFactory

        Raises:
            ConfigurationError: If any directive cannot be applied, the
                nesting is malformed, or a reference does not resolve
        """
        factory = self.catalog_factory
        existing = {name: factory.get_catalog(name).snapshot() for name in factory.names()}

        run = _AssemblyRun(factory, self.registry, self.replace)
        try:
            for index, directive in enumerate(directives):
                try:
                    run.apply(directive)
                except ConfigurationError as e:
                    raise ConfigurationError(
                        f"Directive {index} ({type(directive).__name__}): {e.message}",
                        command_name=e.command_name,
                        config_schema=e.config_schema,
                        provided_config=e.provided_config,
                    ) from e
            run.finish()
        except ConfigurationError:
            self._rollback(existing)
            raise
        except Exception as e:
            self._rollback(existing)
            raise ConfigurationError(f"Assembly failed: {e}") from e

        logger.info(
            "Assembled %d top-level commands (%d created in total)",
            run.registered,
            len(run.created),
        )
        return factory

    def _rollback(self, existing: Dict[str, Dict[str, Command]]):
        factory = self.catalog_factory
        for name in list(factory.names()):
            if name in existing:
                factory.get_catalog(name).restore(existing[name])
            else:
                factory.remove_catalog(name)
        logger.debug("Assembly failed, catalogs rolled back")


class _AssemblyRun:
    """State of a single assembly run."""

    def __init__(self, factory: CatalogFactory, registry: CommandRegistry, replace: bool):
        self.factory = factory
        self.registry = registry
        self.replace = replace

        self.catalog_name: Optional[str] = None
        self.in_catalog = False
        self.stack: List[_ChainFrame] = []
        self.completed: List[_ChainFrame] = []
        self.aliases: List[_Alias] = []
        self.created: List[Command] = []
        self.registered = 0
        self.last_element: Union[Command, _Reference, None] = None

    def apply(self, directive: Any):
        logger.debug(f"Applying {directive!r}")
        if isinstance(directive, BeginCatalog):
            self._begin_catalog(directive)
        elif isinstance(directive, EndCatalog):
            self._end_catalog()
        elif isinstance(directive, DefineCommand):
            self._define_command(directive)
        elif isinstance(directive, BeginChain):
            self._begin_chain(directive)
        elif isinstance(directive, EndChain):
            self._end_chain()
        elif isinstance(directive, SetProperty):
            self._set_property(directive)
        else:
            raise ConfigurationError(f"Unknown directive: {directive!r}")

    def _begin_catalog(self, directive: BeginCatalog):
        if self.in_catalog:
            raise ConfigurationError("Catalogs cannot be nested")
        if self.stack:
            raise ConfigurationError("A catalog cannot begin inside a chain")
        self.in_catalog = True
        self.catalog_name = directive.name
        self.factory.get_catalog(directive.name)

    def _end_catalog(self):
        if not self.in_catalog:
            raise ConfigurationError("EndCatalog without a matching BeginCatalog")
        if self.stack:
            raise ConfigurationError(
                f"Catalog ended while chain '{self.stack[-1].label}' is still open"
            )
        self.in_catalog = False
        self.catalog_name = None

    def _define_command(self, directive: DefineCommand):
        if directive.reference and directive.implementation_ref:
            raise ConfigurationError(
                "A command cannot have both an implementation and a reference",
                command_name=directive.id,
            )
        if not directive.reference and not directive.implementation_ref:
            raise ConfigurationError(
                "A command needs an implementation or a reference",
                command_name=directive.id,
            )
        if not self.stack and not directive.id:
            raise ConfigurationError("Top-level commands must have an id")

        if directive.reference:
            if directive.properties:
                raise ConfigurationError(
                    "Properties cannot be set on a reference", command_name=directive.id
                )
            target = _Reference(
                directive.reference, self.catalog_name, owner=self._owner(directive.id)
            )
            if self.stack:
                self.stack[-1].members.append(target)
            else:
                self.aliases.append(_Alias(directive.id, target))
            self.last_element = target
            return

        command = self._create(directive.implementation_ref, directive.id, directive.properties)
        if self.stack:
            self.stack[-1].members.append(command)
        else:
            self._register(directive.id, command)
        self.last_element = command

    def _begin_chain(self, directive: BeginChain):
        if not self.stack and not directive.id:
            raise ConfigurationError("Top-level chains must have an id")

        if directive.implementation_ref:
            chain = self._create(directive.implementation_ref, directive.id, directive.properties)
            if not isinstance(chain, Chain):
                raise ConfigurationError(
                    f"'{directive.implementation_ref}' is not a chain type",
                    command_name=directive.id,
                )
        else:
            self._check_properties(directive.id, directive.properties)
            chain = Chain(name=directive.id)
            self.created.append(chain)
            for name, value in directive.properties.items():
                self.registry.set_property(chain, name, value)

        frame = _ChainFrame(chain, self.catalog_name, label=self._owner(directive.id))
        if self.stack:
            self.stack[-1].members.append(chain)
        else:
            self._register(directive.id, chain)
        self.stack.append(frame)
        self.last_element = chain

    def _end_chain(self):
        if not self.stack:
            raise ConfigurationError("EndChain without a matching BeginChain")
        frame = self.stack.pop()
        self.completed.append(frame)
        self.last_element = frame.chain

    def _set_property(self, directive: SetProperty):
        if self.last_element is None:
            raise ConfigurationError(f"No element to set property '{directive.name}' on")
        if isinstance(self.last_element, _Reference):
            raise ConfigurationError(
                f"Property '{directive.name}' cannot be set on reference "
                f"'{self.last_element.reference}'"
            )
        self.registry.set_property(self.last_element, directive.name, directive.value)

    def _create(self, implementation_ref: str, name: Optional[str], properties: Dict[str, Any]) -> Command:
        self._check_properties(name, properties)
        command = self.registry.instantiate(implementation_ref, name=name)
        for prop, value in properties.items():
            self.registry.set_property(command, prop, value)
        if hasattr(command, "bind_catalog_factory"):
            command.bind_catalog_factory(self.factory)
        self.created.append(command)
        return command

    @staticmethod
    def _check_properties(name: Optional[str], properties: Any):
        if not isinstance(properties, Mapping):
            raise ConfigurationError(
                f"Properties must be a mapping, not {type(properties).__name__}",
                command_name=name,
            )

    def _register(self, name: str, command: Command):
        catalog = self.factory.get_catalog(self.catalog_name)
        try:
            catalog.register(name, command, replace=self.replace)
        except DuplicateNameError as e:
            raise ConfigurationError(str(e), command_name=name) from e
        self.registered += 1

    def _owner(self, element_id: Optional[str]) -> str:
        """Describe where an element sits, for error messages."""
        path = [frame.label for frame in self.stack]
        if element_id:
            path.append(element_id)
        elif self.stack:
            path.append(f"#{len(self.stack[-1].members)}")
        return "/".join(path) or "(top level)"

    def _resolve(self, target: _Reference) -> Command:
        command = self.factory.resolve(target.reference, target.catalog_name)
        if command is None:
            raise ConfigurationError(
                f"Unresolved reference '{target.reference}' in {target.owner}",
                command_name=target.owner,
            )
        return command

    def finish(self):
        if self.stack:
            raise ConfigurationError(
                f"Chain '{self.stack[-1].label}' was never closed with EndChain"
            )
        if self.in_catalog:
            raise ConfigurationError(
                f"Catalog '{self.catalog_name}' was never closed with EndCatalog"
            )

        # Aliases may point at other aliases; register until no progress
        pending = list(self.aliases)
        while pending:
            unresolved = []
            for alias in pending:
                command = self.factory.resolve(alias.target.reference, alias.target.catalog_name)
                if command is None:
                    unresolved.append(alias)
                    continue
                self.catalog_name = alias.target.catalog_name
                self._register(alias.id, command)
            if len(unresolved) == len(pending):
                self._resolve(unresolved[0].target)
            pending = unresolved

        for frame in self.completed:
            for member in frame.members:
                if isinstance(member, _Reference):
                    member = self._resolve(member)
                frame.chain.add_command(member)

        for command in self.created:
            self.registry.check_required(command)
