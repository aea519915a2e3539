"""
Bots module - Policies that play sessions unattended.

Provides:
- DecisionPolicy: Interface for action selection
- HighestPriorityPolicy, FirstAvailablePolicy, RandomPolicy, ScriptedPolicy
- NoActionsAvailableError: Raised when no action can be picked
"""

from .policy import (
    DecisionPolicy,
    Policy,
    HighestPriorityPolicy,
    FirstAvailablePolicy,
    RandomPolicy,
    ScriptedPolicy,
    NoActionsAvailableError,
    highest_priority_policy,
    scripted_policy,
    get_policy,
    POLICIES,
)

__all__ = [
    "DecisionPolicy",
    "Policy",
    "HighestPriorityPolicy",
    "FirstAvailablePolicy",
    "RandomPolicy",
    "ScriptedPolicy",
    "NoActionsAvailableError",
    "highest_priority_policy",
    "scripted_policy",
    "get_policy",
    "POLICIES",
]
