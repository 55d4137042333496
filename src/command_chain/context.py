"""
Execution context shared by every command in a chain.
"""

from typing import Any, Dict


class Context(dict):
    """
    Context passed through a chain execution.

    A plain mutable mapping from string keys to arbitrary values. The same
    instance flows to every command (nested chains included), so whatever
    one command stores is visible to the commands that run after it.

    Example:
        >>> context = Context(user_id=123)
        >>> context["processed"] = True
        >>> context.retrieve("missing", "n/a")
        'n/a'
    """

    def retrieve(self, key: str, default: Any = None) -> Any:
        """Return the value stored under `key`, or `default` when absent."""
        return self.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for logging."""
        return dict(self)

    def __repr__(self):
        return f"Context({dict.__repr__(self)})"
