"""Transition table for the conversation state machine.

The table maps ``(source state, event)`` to a single transition descriptor
and holds, for each choice pseudo-state, an ordered list of guarded branches
plus a mandatory default. Tables are assembled with TransitionTableBuilder and
validated once, when ``build()`` is called; an invalid table never reaches the
engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Type

from chatflow.config.logging_config import configure_logging
from chatflow.exceptions import ConfigurationError
from chatflow.fsm.actions import Action
from chatflow.models.conversation import ExtendedState

logger = configure_logging("transitions")

GuardCallable = Callable[[ExtendedState], bool]


@dataclass(frozen=True)
class Transition:
    """An external transition ``source --event[guard]--> target``."""

    source: Enum
    event: Enum
    target: Enum
    guard: Optional[GuardCallable] = None
    action: Optional[Action] = None

    def __str__(self) -> str:
        guard = f"[{self.guard!r}]" if self.guard else ""
        return f"{self.source.name} --{self.event.name}{guard}--> {self.target.name}"


@dataclass(frozen=True)
class ChoiceBranch:
    """One outgoing branch of a choice pseudo-state.

    ``guard`` is None only for the default branch.
    """

    target: Enum
    guard: Optional[GuardCallable] = None
    action: Optional[Action] = None


@dataclass(frozen=True)
class Choice:
    """A choice pseudo-state: ordered guarded branches and a default."""

    state: Enum
    branches: Tuple[ChoiceBranch, ...]
    default: ChoiceBranch

    def select(self, extended_state: ExtendedState) -> ChoiceBranch:
        """Return the first branch whose guard holds, else the default."""
        for branch in self.branches:
            if branch.guard(extended_state):
                return branch
        return self.default


class TransitionTable:
    """Validated, read-only transition table. Build with TransitionTableBuilder."""

    def __init__(
        self,
        initial: Enum,
        terminal: Set[Enum],
        transitions: Dict[Tuple[Enum, Enum], Transition],
        choices: Dict[Enum, Choice],
        entry_actions: Dict[Enum, Action],
    ):
        self.initial = initial
        self.terminal = frozenset(terminal)
        self._transitions = dict(transitions)
        self._choices = dict(choices)
        self._entry_actions = dict(entry_actions)

    def find(self, state: Enum, event: Enum) -> Optional[Transition]:
        return self._transitions.get((state, event))

    def is_choice(self, state: Enum) -> bool:
        return state in self._choices

    def choice(self, state: Enum) -> Choice:
        return self._choices[state]

    def entry_action(self, state: Enum) -> Optional[Action]:
        return self._entry_actions.get(state)

    def is_terminal(self, state: Enum) -> bool:
        return state in self.terminal

    @property
    def transitions(self) -> List[Transition]:
        return list(self._transitions.values())

    def __len__(self) -> int:
        return len(self._transitions)


class TransitionTableBuilder:
    """
    Collects states, transitions and choices, then validates them in build().

    Example:
        ```python
        builder = TransitionTableBuilder(State)
        builder.initial(State.IDLE).end(State.ENDED)
        builder.transition(State.IDLE, Event.TEXT_RECEIVED, State.AWAITING_COMMAND,
                           guard=AnyCommandGuard())
        builder.choice(State.AWAITING_COMMAND,
                       branches=[ChoiceBranch(State.ECHO_FLOW, CommandGuard("another"))],
                       default=ChoiceBranch(State.IDLE))
        table = builder.build()
        ```
    """

    def __init__(self, states: Type[Enum]):
        self._states = set(states)
        self._initial: Optional[Enum] = None
        self._terminal: Set[Enum] = set()
        self._transitions: List[Transition] = []
        self._choices: List[Tuple[Enum, List[ChoiceBranch], Optional[ChoiceBranch]]] = []
        self._entry_actions: List[Tuple[Enum, Action]] = []

    def initial(self, state: Enum) -> "TransitionTableBuilder":
        self._initial = state
        return self

    def end(self, state: Enum) -> "TransitionTableBuilder":
        self._terminal.add(state)
        return self

    def on_entry(self, state: Enum, action: Action) -> "TransitionTableBuilder":
        self._entry_actions.append((state, action))
        return self

    def transition(
        self,
        source: Enum,
        event: Enum,
        target: Enum,
        guard: Optional[GuardCallable] = None,
        action: Optional[Action] = None,
    ) -> "TransitionTableBuilder":
        self._transitions.append(Transition(source, event, target, guard, action))
        return self

    def choice(
        self,
        state: Enum,
        branches: Iterable[ChoiceBranch],
        default: Optional[ChoiceBranch] = None,
    ) -> "TransitionTableBuilder":
        self._choices.append((state, list(branches), default))
        return self

    def build(self) -> TransitionTable:
        """Validate everything collected so far and return the table.

        Raises:
            ConfigurationError: On the first problem found
        """
        if self._initial is None:
            raise ConfigurationError("no initial state declared")
        self._check_known(self._initial, "initial state")
        for state in self._terminal:
            self._check_known(state, "terminal state")

        choices: Dict[Enum, Choice] = {}
        for state, branches, default in self._choices:
            self._check_known(state, "choice state")
            if state in choices:
                raise ConfigurationError(f"choice {state.name} declared twice")
            if default is None:
                raise ConfigurationError(f"choice {state.name} has no default branch")
            for branch in branches:
                if branch.guard is None:
                    raise ConfigurationError(
                        f"choice {state.name} has an unguarded branch to {branch.target.name}; "
                        "use the default branch instead"
                    )
            choices[state] = Choice(state, tuple(branches), default)

        for choice in choices.values():
            for branch in choice.branches + (choice.default,):
                self._check_known(branch.target, f"target of choice {choice.state.name}")
                if branch.target in choices:
                    raise ConfigurationError(
                        f"choice {choice.state.name} leads to another choice {branch.target.name}"
                    )

        if self._initial in choices or self._initial in self._terminal:
            raise ConfigurationError(f"initial state {self._initial.name} must be a regular state")

        transitions: Dict[Tuple[Enum, Enum], Transition] = {}
        for transition in self._transitions:
            self._check_known(transition.source, f"source of {transition}")
            self._check_known(transition.target, f"target of {transition}")
            if transition.source in choices:
                raise ConfigurationError(
                    f"{transition}: choice states are transient and cannot be a source"
                )
            if transition.source in self._terminal:
                raise ConfigurationError(f"{transition}: terminal states have no outgoing transitions")
            key = (transition.source, transition.event)
            if key in transitions:
                raise ConfigurationError(
                    f"ambiguous transitions from {transition.source.name} on {transition.event.name}: "
                    f"{transitions[key]} and {transition}"
                )
            transitions[key] = transition

        entry_actions: Dict[Enum, Action] = {}
        for state, action in self._entry_actions:
            self._check_known(state, "entry action state")
            if state in choices:
                raise ConfigurationError(f"choice {state.name} cannot declare an entry action")
            if state in entry_actions:
                raise ConfigurationError(f"state {state.name} declares two entry actions")
            entry_actions[state] = action

        logger.debug(
            f"Built transition table: {len(transitions)} transitions, {len(choices)} choices"
        )
        return TransitionTable(self._initial, self._terminal, transitions, choices, entry_actions)

    def _check_known(self, state: Enum, role: str) -> None:
        if state not in self._states:
            raise ConfigurationError(f"unknown state {state!r} used as {role}")
