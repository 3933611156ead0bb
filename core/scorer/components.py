#!/usr/bin/env python3
"""
Sub-score Calculations - The five compatibility factors between a worker and a vacancy.

Each function returns a score in [0, 100] rounded to 2 decimals. Missing
optional inputs degrade to a neutral 50 instead of raising.

Skill and experience scores come in two flavours, one per call path
(see scoring_modes.py): the single-pair path and the batch recalculation path.
"""

from datetime import datetime, timezone
from typing import List, Optional, Set

from core.scorer.models import (
    EDUCATION_LEVELS,
    VacancyFeatures,
    VacancySkill,
    WorkerEducation,
    WorkerExperience,
    WorkerProfile,
    WorkerSkill,
)

NEUTRAL_SCORE = 50.0


def round2(value: float) -> float:
    return round(value * 100) / 100


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def matched_skill_codes(worker_skills: List[WorkerSkill], vacancy_skills: List[VacancySkill]) -> Set[str]:
    """Distinct worker skill codes that the vacancy asks for (required or not)."""
    vacancy_codes = {s.code for s in vacancy_skills}
    return {s.code for s in worker_skills if s.code in vacancy_codes}


def matched_required_count(worker_skills: List[WorkerSkill], vacancy_skills: List[VacancySkill]) -> int:
    required_codes = {s.code for s in vacancy_skills if s.is_required}
    return len({s.code for s in worker_skills if s.code in required_codes})


# ============ Skill ============

def skill_score_against_required(worker_skills: List[WorkerSkill], vacancy_skills: List[VacancySkill]) -> float:
    """Matched vacancy skills over required skills. No required skills means no constraint."""
    required = [s for s in vacancy_skills if s.is_required]
    if not required:
        return 100.0

    ratio = len(matched_skill_codes(worker_skills, vacancy_skills)) / len(required)
    return round2(min(ratio, 1.0) * 100)


def skill_score_against_all(worker_skills: List[WorkerSkill], vacancy_skills: List[VacancySkill]) -> float:
    """Matched vacancy skills over every skill the vacancy declares."""
    if not vacancy_skills:
        return NEUTRAL_SCORE

    vacancy_codes = {s.code for s in vacancy_skills}
    ratio = len(matched_skill_codes(worker_skills, vacancy_skills)) / len(vacancy_codes)
    return round2(min(ratio, 1.0) * 100)


# ============ Experience ============

def total_experience_years(
    worker_experience: List[WorkerExperience],
    current_year: Optional[int] = None
) -> int:
    """Sum of (end year, or current year for ongoing roles) minus start year."""
    if current_year is None:
        current_year = datetime.now(timezone.utc).year

    total = 0
    for exp in worker_experience:
        if exp.start_year is None:
            continue
        end_year = exp.end_year if exp.end_year is not None else current_year
        total += max(0, end_year - exp.start_year)
    return total


def _has_experience_bounds(vacancy: VacancyFeatures) -> bool:
    return bool(vacancy.experience_min_years) or bool(vacancy.experience_max_years)


def experience_score_relative(total_years: float, vacancy: VacancyFeatures) -> float:
    """
    Deviation relative to the violated bound.

    Below min: 100 - 100 * deficit / min. Above max: 100 - 100 * excess / max.
    An unset max defaults to min + 10.
    """
    if not _has_experience_bounds(vacancy):
        return NEUTRAL_SCORE

    min_years = vacancy.experience_min_years or 0
    max_years = vacancy.experience_max_years or min_years + 10

    if min_years <= total_years <= max_years:
        return 100.0

    if total_years < min_years:
        deficit = min_years - total_years
        return round2(_clamp(100 - (deficit / min_years) * 100))

    excess = total_years - max_years
    return round2(_clamp(100 - (excess / max_years) * 100))


def experience_score_linear(total_years: float, vacancy: VacancyFeatures) -> float:
    """Flat penalty: 10 points per year short of min, 5 per year over max."""
    if not _has_experience_bounds(vacancy):
        return NEUTRAL_SCORE

    if vacancy.experience_min_years and total_years < vacancy.experience_min_years:
        return round2(_clamp(100 - (vacancy.experience_min_years - total_years) * 10))

    if vacancy.experience_max_years and total_years > vacancy.experience_max_years:
        return round2(_clamp(100 - (total_years - vacancy.experience_max_years) * 5))

    return 100.0


# ============ Education ============

def education_score(worker_education: List[WorkerEducation], vacancy: VacancyFeatures) -> float:
    if not vacancy.education_min_level:
        return NEUTRAL_SCORE

    if vacancy.education_min_level not in EDUCATION_LEVELS:
        return NEUTRAL_SCORE
    required_index = EDUCATION_LEVELS.index(vacancy.education_min_level)

    for edu in worker_education:
        if edu.degree_level in EDUCATION_LEVELS and EDUCATION_LEVELS.index(edu.degree_level) >= required_index:
            return 100.0

    return max(0.0, 100.0 - required_index * 25)


# ============ Location ============

def location_score(worker_profile: Optional[WorkerProfile], vacancy: VacancyFeatures) -> float:
    if not vacancy.location_city or worker_profile is None or not worker_profile.city:
        return NEUTRAL_SCORE

    if worker_profile.city.lower() == vacancy.location_city.lower():
        return 100.0

    if (worker_profile.state and vacancy.location_state and
            worker_profile.state.lower() == vacancy.location_state.lower()):
        return 70.0

    if vacancy.is_remote:
        return 90.0

    return 30.0


# ============ Salary ============

def salary_score(worker_profile: Optional[WorkerProfile], vacancy: VacancyFeatures) -> float:
    """
    Symmetric deviation of the worker's expected salary from the vacancy midpoint.

    The score falls linearly from 100 at the midpoint to 0 at half the
    midpoint away in either direction.
    """
    if not vacancy.salary_min and not vacancy.salary_max:
        return NEUTRAL_SCORE

    if vacancy.salary_is_negotiable:
        return 80.0

    salary_min = float(vacancy.salary_min or 0)
    salary_max = float(vacancy.salary_max or salary_min * 2)
    if salary_min == 0 and salary_max == 0:
        return NEUTRAL_SCORE

    if worker_profile is None or worker_profile.expected_salary is None:
        return NEUTRAL_SCORE

    midpoint = (salary_min + salary_max) / 2
    tolerance = 0.5 * midpoint
    if tolerance == 0:
        return 100.0

    distance = abs(float(worker_profile.expected_salary) - midpoint)
    return round2(_clamp((1 - distance / tolerance) * 100))
