"""
Chain: an ordered composite of commands that is itself a command.

Execution runs the member commands in order until one of them reports that
processing is complete, raises, or the list is exhausted. Every filter whose
`execute` was called is then post-processed in reverse order.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from .base import Command, Filter, CONTINUE_PROCESSING, STOP_PROPAGATION
from .context import Context
from .exceptions import ChainFrozenError

logger = logging.getLogger("command_chain")


class ChainState(Enum):
    """
    State of a chain execution.

    - NOT_STARTED: execute has not been called yet
    - RUNNING: forward pass or unwind in progress
    - COMPLETED: every member ran and returned False
    - SHORT_CIRCUITED: a member returned True
    - FAILED: an exception reached the caller
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    SHORT_CIRCUITED = "short_circuited"
    FAILED = "failed"


class Chain(Command):
    """
    Execute a list of commands in order.

    Commands are appended with `add_command` while the chain is being built.
    The first call to `execute` freezes the list; later additions raise
    `ChainFrozenError`. The same command instance may appear more than once.

    Example:
        >>> chain = Chain(name="greet")
        >>> chain.add_command(CopyCommand(config={"value": "hi", "to_key": "msg"}))
        >>> chain.execute(Context())
        False
    """

    def __init__(
        self,
        name: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        commands: Optional[Iterable[Command]] = None,
    ):
        super().__init__(name=name, config=config)
        self._commands: List[Command] = []
        self._frozen = False
        self.last_state = ChainState.NOT_STARTED
        for command in commands or []:
            self.add_command(command)

    def add_command(self, command: Command) -> "Chain":
        """
        Append a command to the end of the chain.

        Raises:
            TypeError: If `command` is not a Command
            ChainFrozenError: If the chain has already been executed
        """
        if not isinstance(command, Command):
            raise TypeError(
                f"Chain members must be Command instances, not {type(command).__name__}"
            )
        if self._frozen:
            raise ChainFrozenError(self.name)
        self._commands.append(command)
        return self

    @property
    def commands(self) -> Tuple[Command, ...]:
        """The member commands, in execution order."""
        return tuple(self._commands)

    @property
    def frozen(self) -> bool:
        """Whether the chain has been executed and can no longer change."""
        return self._frozen

    def execute(self, context: Context) -> bool:
        """
        Run the member commands and unwind the executed filters.

        Returns:
            True if a member short-circuited the chain, False otherwise
            (including when a filter absorbed an exception).

        Raises:
            ValueError: If context is None
            Exception: Whatever a member or postprocess raised, unless a
                filter reported it as handled
        """
        if context is None:
            raise ValueError(f"{self!r}: context must not be None")

        self._frozen = True
        self.last_state = ChainState.RUNNING

        executed_filters: List[Filter] = []
        saved_exception: Optional[Exception] = None
        result = CONTINUE_PROCESSING

        for index, command in enumerate(self._commands):
            if isinstance(command, Filter):
                executed_filters.append(command)
            try:
                result = command.execute(context)
            except Exception as e:
                logger.debug(
                    "Chain %s: member %d (%r) raised %s: %s",
                    self.name,
                    index,
                    command,
                    type(e).__name__,
                    e,
                )
                saved_exception = e
                result = CONTINUE_PROCESSING
                break
            if result:
                logger.debug(
                    "Chain %s: member %d (%r) completed processing",
                    self.name,
                    index,
                    command,
                )
                break

        handled = False
        for chain_filter in reversed(executed_filters):
            try:
                if chain_filter.postprocess(context, saved_exception) == STOP_PROPAGATION:
                    handled = True
            except Exception as e:
                logger.debug(
                    "Chain %s: postprocess of %r raised %s: %s",
                    self.name,
                    chain_filter,
                    type(e).__name__,
                    e,
                )
                saved_exception = e
                handled = False

        if saved_exception is not None and not handled:
            self.last_state = ChainState.FAILED
            raise saved_exception

        if saved_exception is not None:
            logger.debug(
                "Chain %s: %s absorbed by a filter",
                self.name,
                type(saved_exception).__name__,
            )

        self.last_state = ChainState.SHORT_CIRCUITED if result else ChainState.COMPLETED
        return bool(result)

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name}, commands={len(self._commands)})>"
