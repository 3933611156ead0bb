#!/usr/bin/env python3
"""
Scoring Module - Worker/vacancy compatibility scoring.

Public API:
- compute_score: Score one worker against one vacancy
- ScoringMode: Which call path's formulas to apply (SINGLE or BATCH)
- ScoreComponents / ScoreResult / ScoreSummary: Result shapes

Layout:

- models.py: Feature records and result dataclasses
- components.py: The five sub-score calculations
- scoring_modes.py: Single-pair and batch policies, weights, recommendation gates
"""

from core.scorer.models import (
    EDUCATION_LEVELS,
    ScoreComponents,
    ScoreResult,
    ScoreSummary,
    VacancyFeatures,
    VacancySkill,
    WorkerEducation,
    WorkerExperience,
    WorkerFeatures,
    WorkerProfile,
    WorkerSkill,
)
from core.scorer.scoring_modes import ScoringMode, compute_score, weighted_total, SCORE_WEIGHTS

__all__ = [
    'EDUCATION_LEVELS',
    'ScoreComponents',
    'ScoreResult',
    'ScoreSummary',
    'VacancyFeatures',
    'VacancySkill',
    'WorkerEducation',
    'WorkerExperience',
    'WorkerFeatures',
    'WorkerProfile',
    'WorkerSkill',
    'ScoringMode',
    'compute_score',
    'weighted_total',
    'SCORE_WEIGHTS',
]
