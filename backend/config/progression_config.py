#!/usr/bin/env python
"""
Progression and Settlement Configuration for MatchDay

Contains the tuning tables used when a match is settled: per-position skill
weights, diminishing-returns brackets, stat bonuses, performance weights and the
bounds on aura points and match history. Everything here is read-only.
"""

from types import MappingProxyType

# Positions
GOALKEEPER = "Goalkeeper"
DEFENDER = "Defender"
MIDFIELDER = "Midfielder"
FORWARD = "Forward"

POSITIONS = frozenset({GOALKEEPER, DEFENDER, MIDFIELDER, FORWARD})

# Skill sets (order matters for display only)
GOALKEEPER_SKILLS = ("diving", "handling", "kicking", "reflexes", "positioning", "speed")
OUTFIELD_SKILLS = ("pace", "shooting", "passing", "dribbling", "defence", "physical")

SKILL_CAP = 99.0
SKILL_FLOOR = 0.0

# Base gain applied to every participant, per position
POSITION_SKILL_WEIGHTS = MappingProxyType({
    GOALKEEPER: MappingProxyType({
        "reflexes": 0.30, "diving": 0.25, "handling": 0.20,
        "positioning": 0.20, "kicking": 0.15, "speed": 0.10,
    }),
    DEFENDER: MappingProxyType({
        "defence": 0.30, "physical": 0.25, "passing": 0.20,
        "pace": 0.15, "dribbling": 0.10, "shooting": 0.05,
    }),
    MIDFIELDER: MappingProxyType({
        "passing": 0.30, "dribbling": 0.25, "pace": 0.20,
        "defence": 0.15, "shooting": 0.15, "physical": 0.10,
    }),
    FORWARD: MappingProxyType({
        "shooting": 0.30, "pace": 0.25, "dribbling": 0.20,
        "passing": 0.15, "physical": 0.10, "defence": 0.05,
    }),
})

# Diminishing returns: (upper bound exclusive, multiplier); >= 99 gets nothing
GROWTH_BRACKETS = (
    (70.0, 1.0),
    (80.0, 0.7),
    (85.0, 0.5),
    (90.0, 0.3),
    (95.0, 0.15),
    (99.0, 0.05),
)

# Event-driven gains
GOAL_SKILL_GAIN = 0.5          # shooting, per goal
ASSIST_SKILL_GAIN = 0.4        # passing, per assist
CLEAN_SHEET_SKILL_GAIN = 0.5   # defence, defenders on a winning side with nothing conceded
MOTM_SKILL_GAIN = 1.0          # dribbling

# Performance score
PERFORMANCE_SKILL_WEIGHT = 0.6
PERFORMANCE_STATS_WEIGHT = 1.0
PERFORMANCE_OPPONENT_WEIGHT = 0.4
DEFAULT_OPPONENT_TEAM_RATING = 50.0
PERFORMANCE_MIN = 0.0
PERFORMANCE_MAX = 100.0

STATS_SCORE_WEIGHTS = MappingProxyType({
    "goals": 5,
    "assists": 3,
    "yellow_cards": -2,
    "red_cards": -5,
})
MOTM_STATS_BONUS = 10

# Aura
AURA_MIN = 0
AURA_MAX = 999
AURA_MOTM_GAIN = 100
AURA_PARTICIPANT_LOSS = 100

# History
MATCH_HISTORY_LIMIT = 10
TEAM_SETTLED_MATCHES_LIMIT = 50
ENTRY_FEE_RECEIPTS_LIMIT = 50

MOTM_ACHIEVEMENT_PREFIX = "MOTM_"

# Ratings (team and player), 1..5 stars
RATING_MIN = 1
RATING_MAX = 5

# Starting skills for a new player, per position
DEFAULT_SKILLS = MappingProxyType({
    GOALKEEPER: MappingProxyType({
        "diving": 50, "handling": 50, "kicking": 50,
        "reflexes": 50, "positioning": 50, "speed": 40,
    }),
    DEFENDER: MappingProxyType({
        "pace": 45, "shooting": 30, "passing": 50,
        "dribbling": 40, "defence": 65, "physical": 60,
    }),
    MIDFIELDER: MappingProxyType({
        "pace": 60, "shooting": 55, "passing": 65,
        "dribbling": 60, "defence": 55, "physical": 55,
    }),
    FORWARD: MappingProxyType({
        "pace": 70, "shooting": 70, "passing": 55,
        "dribbling": 65, "defence": 35, "physical": 55,
    }),
})


def skills_for_position(position: str):
    """Skills that make up the overall rating for a position."""
    return GOALKEEPER_SKILLS if position == GOALKEEPER else OUTFIELD_SKILLS
