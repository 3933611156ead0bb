#!/usr/bin/env python3
"""
Scoring Modes - Single-pair and batch scoring policies.

The two call paths score with deliberately different formulas:

SINGLE (MatchingService.calculate_score):
- skill: matched vacancy skills / required skills, 100 if nothing is required
- experience: deviation relative to the violated bound
- recommended: total >= 70

BATCH (RecalculationOrchestrator):
- skill: matched vacancy skills / all vacancy skills, 50 if none declared
- experience: 10 points per missing year, 5 per surplus year
- recommended: total >= 70 and at least half the required skills matched

Education, location and salary are shared. Both modes use the same weights.
"""

from enum import Enum
from typing import List, Optional
import logging

from core.scorer import components
from core.scorer.models import (
    ScoreComponents,
    VacancyFeatures,
    VacancySkill,
    WorkerEducation,
    WorkerExperience,
    WorkerProfile,
    WorkerSkill,
)

logger = logging.getLogger(__name__)

SCORE_WEIGHTS = {
    'skill': 0.40,
    'experience': 0.25,
    'education': 0.15,
    'location': 0.10,
    'salary': 0.10,
}

MIN_RECOMMENDED_SCORE = 70.0
MIN_REQUIRED_SKILL_RATIO = 0.5


class ScoringMode(Enum):
    SINGLE = "single"
    BATCH = "batch"


def weighted_total(
    skill: float,
    experience: float,
    education: float,
    location: float,
    salary: float
) -> float:
    return components.round2(
        skill * SCORE_WEIGHTS['skill'] +
        experience * SCORE_WEIGHTS['experience'] +
        education * SCORE_WEIGHTS['education'] +
        location * SCORE_WEIGHTS['location'] +
        salary * SCORE_WEIGHTS['salary']
    )


def compute_score(
    worker_skills: List[WorkerSkill],
    worker_education: List[WorkerEducation],
    worker_experience: List[WorkerExperience],
    vacancy_skills: List[VacancySkill],
    vacancy: VacancyFeatures,
    worker_profile: Optional[WorkerProfile],
    mode: ScoringMode = ScoringMode.SINGLE,
    current_year: Optional[int] = None
) -> ScoreComponents:
    """
    Score one worker against one vacancy.

    Args:
        worker_skills: Worker's skill records
        worker_education: Worker's education records
        worker_experience: Worker's experience records
        vacancy_skills: Vacancy's skill records (required and optional)
        vacancy: Vacancy requirements
        worker_profile: Worker's profile, or None when absent
        mode: Which call path's formulas to apply
        current_year: Year used for ongoing experience (defaults to now)

    Returns:
        ScoreComponents with the five sub-scores, weighted total and recommendation
    """
    total_years = components.total_experience_years(worker_experience, current_year)

    if mode == ScoringMode.BATCH:
        skill_score = components.skill_score_against_all(worker_skills, vacancy_skills)
        experience_score = components.experience_score_linear(total_years, vacancy)
    else:
        skill_score = components.skill_score_against_required(worker_skills, vacancy_skills)
        experience_score = components.experience_score_relative(total_years, vacancy)

    education_score = components.education_score(worker_education, vacancy)
    location_score = components.location_score(worker_profile, vacancy)
    salary_score = components.salary_score(worker_profile, vacancy)

    total_score = weighted_total(
        skill_score, experience_score, education_score, location_score, salary_score
    )

    skill_required_count = len([s for s in vacancy_skills if s.is_required])

    if mode == ScoringMode.BATCH:
        matched_required = components.matched_required_count(worker_skills, vacancy_skills)
        is_recommended = (
            total_score >= MIN_RECOMMENDED_SCORE and
            matched_required >= skill_required_count * MIN_REQUIRED_SKILL_RATIO
        )
    else:
        is_recommended = total_score >= MIN_RECOMMENDED_SCORE

    return ScoreComponents(
        skill_score=skill_score,
        experience_score=experience_score,
        education_score=education_score,
        location_score=location_score,
        salary_score=salary_score,
        total_score=total_score,
        skill_match_count=len(components.matched_skill_codes(worker_skills, vacancy_skills)),
        skill_required_count=skill_required_count,
        is_recommended=is_recommended,
    )
