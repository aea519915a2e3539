"""
Decision Policy - Interface for unattended action selection.

A policy looks at a session snapshot and the currently available actions
and returns the id of the action to take. Policies must pick from the given
actions; GameSession.choose() rejects anything else.

Plain functions with the signature (snapshot, actions) -> str are accepted
anywhere a DecisionPolicy is.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Sequence, Union

from ..engine_core.rng import SeedInput, Xorshift128Plus

if TYPE_CHECKING:
    from ..engine_core.state import GameSnapshot
    from ..template_compiler import CompiledAction


class DecisionPolicy(ABC):
    """
    Abstract base class for decision policies.

    Implementations range from fixed rules to seeded random play.
    """

    @abstractmethod
    def select_action(
        self,
        snapshot: GameSnapshot,
        actions: Sequence[CompiledAction],
    ) -> str:
        """
        Select an action from the available actions.

        Args:
            snapshot: Current session snapshot
            actions: Actions available this turn, in template order

        Returns:
            Id of the chosen action
        """
        pass

    def __call__(self, snapshot: GameSnapshot, actions: Sequence[CompiledAction]) -> str:
        return self.select_action(snapshot, actions)

    def get_name(self) -> str:
        """Get the policy's name/identifier."""
        return self.__class__.__name__


PolicyFunction = Callable[["GameSnapshot", Sequence["CompiledAction"]], str]
Policy = Union[DecisionPolicy, PolicyFunction]


class NoActionsAvailableError(ValueError):
    """Raised when a policy is asked to pick from an empty action set."""

    def __init__(self, turn: int):
        self.turn = turn
        super().__init__(f"No actions available to choose during turn {turn}")


def _require_actions(snapshot: GameSnapshot, actions: Sequence[CompiledAction]):
    if not actions:
        raise NoActionsAvailableError(snapshot.turn)


class HighestPriorityPolicy(DecisionPolicy):
    """
    Picks the action with the greatest priority.

    Ties go to the action listed first.
    """

    def select_action(self, snapshot, actions):
        _require_actions(snapshot, actions)
        best = actions[0]
        for action in actions[1:]:
            if action.priority > best.priority:
                best = action
        return best.id


class FirstAvailablePolicy(DecisionPolicy):
    """
    Always selects the first available action.

    Used for:
    - Deterministic testing
    - Baseline comparison
    """

    def select_action(self, snapshot, actions):
        _require_actions(snapshot, actions)
        return actions[0].id


class RandomPolicy(DecisionPolicy):
    """
    Random policy - selects actions uniformly at random.

    Draws from its own xorshift128+ generator, so a given seed always
    produces the same choices.
    """

    def __init__(self, seed: SeedInput = None):
        self.rng = Xorshift128Plus(seed)

    def select_action(self, snapshot, actions):
        _require_actions(snapshot, actions)
        return actions[self.rng.next_int(len(actions))].id


class ScriptedPolicy(DecisionPolicy):
    """
    Replays a recorded sequence of action ids, one per turn.

    Turn N plays action_ids[N - 1]. Once the script runs out, the fallback
    policy decides.
    """

    def __init__(self, action_ids: Sequence[str], fallback: Policy | None = None):
        self.action_ids = list(action_ids)
        self.fallback = fallback or FirstAvailablePolicy()

    def select_action(self, snapshot, actions):
        _require_actions(snapshot, actions)
        index = snapshot.turn - 1
        if 0 <= index < len(self.action_ids):
            return self.action_ids[index]
        return self.fallback(snapshot, actions)


highest_priority_policy = HighestPriorityPolicy()


def scripted_policy(action_ids: Sequence[str]) -> ScriptedPolicy:
    """Policy that replays `action_ids`, then falls back to the first available action."""
    return ScriptedPolicy(action_ids)


POLICIES: dict[str, Callable[..., DecisionPolicy]] = {
    "highest": HighestPriorityPolicy,
    "first": FirstAvailablePolicy,
    "random": RandomPolicy,
}


def get_policy(name: str, seed: SeedInput = None) -> DecisionPolicy:
    """Build a named policy. Only 'random' uses the seed."""
    if name not in POLICIES:
        raise ValueError(f"Unknown policy '{name}'. Choose from: {', '.join(POLICIES)}")
    if name == "random":
        return RandomPolicy(seed)
    return POLICIES[name]()
