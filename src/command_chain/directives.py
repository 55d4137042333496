"""
Assembly directives.

A directive stream describes catalogs, commands and chains in document
order. Producers (such as the JSON document parser) emit these value
objects; the Assembler consumes them.

Example:
    >>> directives = [
    ...     BeginCatalog("foo"),
    ...     BeginChain(id="Execute2a"),
    ...     DefineCommand(implementation_ref="delegating", properties={"label": "1"}),
    ...     DefineCommand(reference="Finish"),
    ...     EndChain(),
    ...     DefineCommand(id="Finish", implementation_ref="non_delegating"),
    ...     EndCatalog(),
    ... ]
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BeginCatalog:
    """Start adding to a catalog; None or blank selects the default catalog."""

    name: Optional[str] = None


@dataclass(frozen=True)
class EndCatalog:
    """Return to the default catalog."""


@dataclass(frozen=True)
class DefineCommand:
    """
    Define a command, or refer to one defined elsewhere.

    Attributes:
        id: Catalog name of the command; required at top level, optional
            (and not registered) inside a chain
        implementation_ref: Registered command type or import path
        properties: Property values, usually strings
        reference: Name of an existing command ('name' or 'catalog.name')
            used instead of implementation_ref
    """

    id: Optional[str] = None
    implementation_ref: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    reference: Optional[str] = None


@dataclass(frozen=True)
class BeginChain:
    """
    Start a chain; members follow until the matching EndChain.

    Attributes:
        id: Catalog name of the chain; required at top level
        implementation_ref: Chain subclass to instantiate; a plain Chain
            when omitted
        properties: Property values for the chain itself
    """

    id: Optional[str] = None
    implementation_ref: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EndChain:
    """Close the innermost open chain."""


@dataclass(frozen=True)
class SetProperty:
    """Set a property on the element most recently defined or begun."""

    name: str
    value: Any
