"""
Document parser for converting JSON catalog definitions to directives.

Provides utilities to parse and validate catalog documents.
"""

import json
from typing import Any, Dict, List, Union

from .directives import (
    BeginCatalog,
    BeginChain,
    DefineCommand,
    EndCatalog,
    EndChain,
)

Document = Union[str, Dict[str, Any], List[Dict[str, Any]]]

_ELEMENT_KEYS = {"id", "class", "ref", "properties", "chain"}


class DocumentParser:
    """
    Utility class to parse and validate catalog documents.

    Transforms JSON-like documents into the directive stream consumed by
    the Assembler.

    A document is either a list of elements (added to the default catalog)
    or a dict with a "catalogs" list, each catalog having a "name" and a
    "commands" list. An element is a dict with:

    - "id": catalog name (required for top-level elements)
    - "class": registered command type or import path
    - "ref": name of a command defined elsewhere, instead of "class"
    - "properties": property values
    - "chain": list of member elements; makes the element a chain

    Example:
        >>> document = {
        ...     "catalogs": [{
        ...         "name": "foo",
        ...         "commands": [
        ...             {"id": "Execute2a", "chain": [
        ...                 {"class": "delegating", "properties": {"label": "1"}},
        ...                 {"ref": "Finish"}
        ...             ]},
        ...             {"id": "Finish", "class": "non_delegating"}
        ...         ]
        ...     }]
        ... }
        >>>
        >>> directives = DocumentParser.from_json(document)
        >>> # Now ready to assemble with Assembler
    """

    @staticmethod
    def _load(document: Document, document_name: str) -> Any:
        if isinstance(document, str):
            try:
                return json.loads(document)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in document '{document_name}': {e}") from e
        if isinstance(document, (dict, list)):
            return document
        raise TypeError(
            f"document must be a JSON string, a dict or a list, not {type(document).__name__}"
        )

    @staticmethod
    def _catalogs(parsed: Any) -> List[Dict[str, Any]]:
        """Normalize a parsed document to a list of catalog definitions."""
        if isinstance(parsed, list):
            return [{"name": None, "commands": parsed}]
        if "catalogs" in parsed:
            return parsed["catalogs"]
        return [{"name": parsed.get("name"), "commands": parsed.get("commands", [])}]

    @classmethod
    def from_json(cls, document: Document, document_name: str = "Unnamed") -> List[Any]:
        """
        Transform a catalog document into a directive list.

        Args:
            document: A JSON string, dict or list defining the catalogs.
            document_name: Name for clearer error messages.

        Returns:
            Directives in document order.

        Raises:
            ValueError: If JSON is invalid or an element is malformed.
            TypeError: If input is not a string, dict or list.

        Example:
            >>> DocumentParser.from_json('[{"id": "copy", "class": "copy"}]')
            [BeginCatalog(name=None), DefineCommand(id='copy', ...), EndCatalog()]
        """
        parsed = cls._load(document, document_name)

        directives: List[Any] = []
        for catalog_idx, catalog_def in enumerate(cls._catalogs(parsed)):
            if not isinstance(catalog_def, dict):
                raise ValueError(
                    f"Catalog {catalog_idx} in '{document_name}' must be a dict, "
                    f"not {type(catalog_def).__name__}"
                )
            directives.append(BeginCatalog(catalog_def.get("name")))
            for idx, element in enumerate(catalog_def.get("commands", [])):
                cls._element(element, f"{document_name}[{idx}]", directives)
            directives.append(EndCatalog())
        return directives

    @classmethod
    def _element(cls, element: Dict[str, Any], path: str, directives: List[Any]):
        if not isinstance(element, dict):
            raise ValueError(f"Element {path} must be a dict, not {type(element).__name__}")

        properties = element.get("properties", {})
        if not isinstance(properties, dict):
            raise ValueError(f"Element {path}: 'properties' must be a dict")
        if "chain" in element:
            directives.append(
                BeginChain(
                    id=element.get("id"),
                    implementation_ref=element.get("class"),
                    properties=properties,
                )
            )
            for idx, member in enumerate(element["chain"]):
                cls._element(member, f"{path}.chain[{idx}]", directives)
            directives.append(EndChain())
            return

        if not element.get("class") and not element.get("ref"):
            raise ValueError(f"Element {path} is missing required 'class' or 'ref' field.")

        directives.append(
            DefineCommand(
                id=element.get("id"),
                implementation_ref=element.get("class"),
                properties=properties,
                reference=element.get("ref"),
            )
        )

    @classmethod
    def validate(cls, document: Document, document_name: str = "Unnamed") -> List[str]:
        """
        Validate a catalog document without assembling it.

        Checks:
        - JSON structure is valid
        - Every element is a dict with known keys
        - Top-level elements have an id
        - Each element has exactly one of 'class' and 'ref' (chains may omit both)
        - Command types are registered or importable

        Args:
            document: Catalog document as JSON string, dict or list.
            document_name: Name for error context.

        Returns:
            List of validation error messages (empty if valid).

        Example:
            >>> errors = DocumentParser.validate([{"id": "x", "class": "unknown"}])
            >>> if errors:
            ...     print("Validation failed:", errors)
        """
        from .registry import get_registry
        from .exceptions import UnknownCommandTypeError

        try:
            parsed = cls._load(document, document_name)
        except ValueError as e:
            return [str(e)]
        except TypeError as e:
            return [f"Expected JSON string, dict or list: {e}"]

        registry = get_registry()
        errors: List[str] = []

        def check(element: Any, path: str, top_level: bool):
            if not isinstance(element, dict):
                errors.append(f"{path}: Expected dict, got {type(element).__name__}")
                return

            unknown = set(element) - _ELEMENT_KEYS
            if unknown:
                errors.append(f"{path}: Unknown keys {sorted(unknown)}")
            if top_level and not element.get("id"):
                errors.append(f"{path}: Missing required 'id' field")
            if element.get("class") and element.get("ref"):
                errors.append(f"{path}: 'class' and 'ref' are mutually exclusive")
            if "chain" not in element and not element.get("class") and not element.get("ref"):
                errors.append(f"{path}: Missing required 'class' or 'ref' field")
            if element.get("class"):
                try:
                    registry.resolve_class(element["class"])
                except UnknownCommandTypeError:
                    errors.append(f"{path}: Unknown command type '{element['class']}'")
            if not isinstance(element.get("properties", {}), dict):
                errors.append(f"{path}: 'properties' must be a dict")

            if "chain" in element:
                if not isinstance(element["chain"], list):
                    errors.append(f"{path}: 'chain' must be a list")
                    return
                for idx, member in enumerate(element["chain"]):
                    check(member, f"{path}.chain[{idx}]", top_level=False)

        if isinstance(parsed, dict) and "catalogs" in parsed and not isinstance(parsed["catalogs"], list):
            return ["'catalogs' must be a list"]

        for catalog_idx, catalog_def in enumerate(cls._catalogs(parsed)):
            if not isinstance(catalog_def, dict):
                errors.append(f"Catalog {catalog_idx}: Expected dict, got {type(catalog_def).__name__}")
                continue
            commands = catalog_def.get("commands", [])
            if not isinstance(commands, list):
                errors.append(f"Catalog {catalog_idx}: 'commands' must be a list")
                continue
            for idx, element in enumerate(commands):
                check(element, f"Catalog {catalog_idx} element {idx}", top_level=True)

        return errors
