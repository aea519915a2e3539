"""
Meteor Miners Template

A twelve-turn solo roll-and-write: roll two asteroid dice, then blast
meteors for ore, harvest crystal on doubles, refine ore into crystal, or
cash crystal and combo in for achievements.

The template defines:
- Resources (ore, crystal, combo, achievements)
- Dice (2d6)
- Actions (five, one always available)
- Turn limit and end conditions
- Scoring
"""

from ...spec_schema.game_spec import (
    ActionDefinition,
    ActionEffectDefinition,
    DiceDefinition,
    GameTemplate,
    ResourceDefinition,
    ResourceThresholdCondition,
    ScoringDefinition,
    TurnLimitCondition,
    TurnStructureDefinition,
)

TEMPLATE_ID = "meteor-miners"
TURN_LIMIT = 12


def create_meteor_miners_template() -> GameTemplate:
    """
    Create the Meteor Miners template.

    This is the complete definition of the game in template form.
    """
    return GameTemplate(
        id=TEMPLATE_ID,
        name="Meteor Miners",
        version="1.0.0",
        locale="en",
        description="Mine a meteor field for ore and crystal before the window closes.",
        resources=_define_resources(),
        dice=_define_dice(),
        actions=_define_actions(),
        turn=TurnStructureDefinition(limit=TURN_LIMIT),
        scoring=_define_scoring(),
        end_conditions=[
            TurnLimitCondition(type="turnLimit", limit=TURN_LIMIT),
            ResourceThresholdCondition(
                type="resourceThreshold",
                resource="achievements",
                comparison=">=",
                value=3,
            ),
        ],
        metadata={"players": 1, "estimatedMinutes": 10},
    )


def _define_resources() -> list[ResourceDefinition]:
    return [
        ResourceDefinition(id="ore", label="Ore", initial=0, min=0, description="Raw meteor ore"),
        ResourceDefinition(id="crystal", label="Crystal", initial=0, min=0, max=12, description="Refined crystal"),
        ResourceDefinition(id="combo", label="Combo", initial=0, min=0, max=5, description="Consecutive strong turns"),
        ResourceDefinition(id="achievements", label="Achievements", initial=0, min=0),
    ]


def _define_dice() -> list[DiceDefinition]:
    return [DiceDefinition(id="asteroid-dice", label="Asteroid Dice", sides=6, count=2)]


def _define_actions() -> list[ActionDefinition]:
    """Define the five actions. Stabilize has no condition, so every turn has a move."""
    return [
        ActionDefinition(
            id="blast-meteor",
            label="Blast Meteor",
            description="On a big roll, take ore equal to the highest die.",
            priority=3,
            condition="roll_total >= 9",
            effects=[
                ActionEffectDefinition(resource="ore", expression="roll_high"),
                ActionEffectDefinition(resource="combo", expression="1", clamp=True),
            ],
        ),
        ActionDefinition(
            id="harvest-crystal",
            label="Harvest Crystal",
            description="Doubles yield two crystal.",
            priority=4,
            condition="roll_1 == roll_2",
            effects=[
                ActionEffectDefinition(resource="crystal", expression="2", clamp=True),
                ActionEffectDefinition(resource="combo", expression="1", clamp=True),
            ],
        ),
        ActionDefinition(
            id="refine-ore",
            label="Refine Ore",
            description="Turn three ore into one crystal.",
            priority=2,
            condition="ore >= 3",
            effects=[
                ActionEffectDefinition(resource="ore", expression="-3"),
                ActionEffectDefinition(resource="crystal", expression="1", clamp=True),
            ],
        ),
        ActionDefinition(
            id="claim-achievement",
            label="Claim Achievement",
            description="Spend four crystal and your whole combo for an achievement.",
            priority=5,
            condition="crystal >= 4 && combo >= 3",
            effects=[
                ActionEffectDefinition(resource="crystal", expression="-4"),
                ActionEffectDefinition(resource="combo", expression="-combo"),
                ActionEffectDefinition(resource="achievements", expression="1"),
            ],
        ),
        ActionDefinition(
            id="stabilize",
            label="Stabilize",
            description="Scrape one ore; the combo cools down.",
            priority=1,
            effects=[
                ActionEffectDefinition(resource="ore", expression="1"),
                ActionEffectDefinition(resource="combo", expression="IF(combo > 0, -1, 0)"),
            ],
        ),
    ]


def _define_scoring() -> ScoringDefinition:
    return ScoringDefinition(
        total="ore * 3 + crystal * 5 + combo * 4 + achievements * 10",
        components={
            "ore": "ore * 3",
            "crystal": "crystal * 5",
            "combo": "combo * 4",
            "achievements": "achievements * 10",
        },
    )
