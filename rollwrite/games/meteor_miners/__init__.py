"""
Meteor Miners - The bundled sample game.

Twelve turns of 2d6 rolls. Ore and crystal score directly; combo and
achievements reward runs of strong turns.
"""

from .template import TEMPLATE_ID, TURN_LIMIT, create_meteor_miners_template

SAMPLE_REPLAY_SEEDS = (42, 1337, 20250920)

__all__ = [
    "TEMPLATE_ID",
    "TURN_LIMIT",
    "SAMPLE_REPLAY_SEEDS",
    "create_meteor_miners_template",
]
