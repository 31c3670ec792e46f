"""
Scoring module for the league.

Turns raw observations into metric, category and overall scores.
"""

from league.scoring.engine import ScoringEngine

__all__ = ["ScoringEngine"]
