#!/usr/bin/env python3
"""
Tests for compute_score and the two scoring modes.

Covers the worked scenarios (one of two required skills, two years against a
five-year minimum), the weight invariant, score bounds, and the places where
the single-pair and batch formulas intentionally differ.
"""
import itertools

import pytest

from core.scorer import (
    ScoringMode,
    VacancyFeatures,
    VacancySkill,
    WorkerEducation,
    WorkerExperience,
    WorkerProfile,
    WorkerSkill,
    compute_score,
    weighted_total,
    SCORE_WEIGHTS,
)
from core.scorer.components import round2

CURRENT_YEAR = 2025


def _skills(*codes):
    return [WorkerSkill(code=c) for c in codes]


def _vacancy_skills(required=(), optional=()):
    return (
        [VacancySkill(code=c, is_required=True) for c in required] +
        [VacancySkill(code=c, is_required=False) for c in optional]
    )


def _experience(years):
    return [WorkerExperience(start_year=CURRENT_YEAR - years, end_year=CURRENT_YEAR)]


def _score(worker_skills=(), vacancy_skills=None, experience=None, education=None,
           vacancy=None, profile=None, mode=ScoringMode.SINGLE):
    vacancy_skills = vacancy_skills or []
    vacancy = vacancy or VacancyFeatures(id="v1", skills=vacancy_skills)
    return compute_score(
        _skills(*worker_skills),
        education or [],
        experience or [],
        vacancy_skills,
        vacancy,
        profile,
        mode=mode,
        current_year=CURRENT_YEAR,
    )


class TestWorkedScenarios:

    @pytest.mark.parametrize("mode", [ScoringMode.SINGLE, ScoringMode.BATCH])
    def test_one_of_two_required_skills_scores_50(self, mode):
        result = _score(
            worker_skills=("SQL",),
            vacancy_skills=_vacancy_skills(required=("SQL", "PYTHON")),
            mode=mode,
        )
        assert result.skill_score == 50
        assert result.skill_match_count == 1
        assert result.skill_required_count == 2

    def test_two_years_against_five_year_minimum_scores_40(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=5)
        result = _score(experience=_experience(2), vacancy=vacancy)
        assert result.experience_score == 40

    def test_batch_mode_penalises_ten_points_per_missing_year(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=5)
        result = _score(experience=_experience(2), vacancy=vacancy, mode=ScoringMode.BATCH)
        assert result.experience_score == 70


class TestSkillScore:

    def test_single_mode_without_required_skills_is_unconstrained(self):
        result = _score(vacancy_skills=_vacancy_skills(optional=("GO",)))
        assert result.skill_score == 100

    def test_batch_mode_without_any_skills_is_neutral(self):
        result = _score(worker_skills=("GO",), mode=ScoringMode.BATCH)
        assert result.skill_score == 50

    def test_batch_mode_divides_by_all_vacancy_skills(self):
        vacancy_skills = _vacancy_skills(required=("SQL",), optional=("GO", "RUST", "JAVA"))
        result = _score(worker_skills=("SQL", "GO"), vacancy_skills=vacancy_skills, mode=ScoringMode.BATCH)
        assert result.skill_score == 50

    def test_single_mode_counts_optional_matches_against_required(self):
        vacancy_skills = _vacancy_skills(required=("SQL", "PYTHON"), optional=("GO",))
        result = _score(worker_skills=("SQL", "GO"), vacancy_skills=vacancy_skills)
        assert result.skill_score == 100

    def test_duplicate_worker_skills_count_once(self):
        vacancy_skills = _vacancy_skills(required=("SQL", "PYTHON"))
        result = _score(worker_skills=("SQL", "SQL"), vacancy_skills=vacancy_skills)
        assert result.skill_match_count == 1
        assert result.skill_score == 50


class TestExperienceScore:

    def test_no_bounds_is_neutral_in_both_modes(self):
        for mode in ScoringMode:
            result = _score(experience=_experience(8), mode=mode)
            assert result.experience_score == 50

    def test_single_mode_defaults_max_to_min_plus_ten(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=3)
        result = _score(experience=_experience(20), vacancy=vacancy)
        assert result.experience_score == round2(100 - 7 / 13 * 100)

    def test_single_mode_above_max_floors_at_zero(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=2, experience_max_years=5)
        result = _score(experience=_experience(11), vacancy=vacancy)
        assert result.experience_score == 0

    def test_batch_mode_penalises_five_points_per_surplus_year(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=2, experience_max_years=5)
        result = _score(experience=_experience(10), vacancy=vacancy, mode=ScoringMode.BATCH)
        assert result.experience_score == 75

    def test_inside_range_is_full_score(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=2, experience_max_years=5)
        for mode in ScoringMode:
            assert _score(experience=_experience(4), vacancy=vacancy, mode=mode).experience_score == 100

    def test_ongoing_and_undated_records(self):
        vacancy = VacancyFeatures(id="v1", experience_min_years=5)
        experience = [
            WorkerExperience(start_year=CURRENT_YEAR - 3, end_year=None),
            WorkerExperience(start_year=None, end_year=2010),
            WorkerExperience(start_year=2020, end_year=2018),
        ]
        # 3 years ongoing, undated skipped, negative span counts as 0
        result = _score(experience=experience, vacancy=vacancy)
        assert result.experience_score == 60


class TestSharedComponents:

    def test_education_ladder(self):
        vacancy = VacancyFeatures(id="v1", education_min_level="BACHELOR")
        assert _score(education=[WorkerEducation("MASTER")], vacancy=vacancy).education_score == 100
        assert _score(education=[WorkerEducation("DIPLOMA")], vacancy=vacancy).education_score == 50
        assert _score(vacancy=vacancy).education_score == 50

        doctorate = VacancyFeatures(id="v1", education_min_level="DOCTORATE")
        assert _score(vacancy=doctorate).education_score == 0

        unknown = VacancyFeatures(id="v1", education_min_level="APPRENTICESHIP")
        assert _score(vacancy=unknown).education_score == 50

    def test_location(self):
        vacancy = VacancyFeatures(id="v1", location_city="Recife", location_state="PE", is_remote=True)

        def location(city=None, state=None):
            return _score(vacancy=vacancy, profile=WorkerProfile("w1", city=city, state=state)).location_score

        assert location("recife") == 100
        assert location("Olinda", "pe") == 70
        assert location("Lisbon", "LX") == 90
        assert location() == 50
        assert _score(vacancy=vacancy).location_score == 50

        on_site = VacancyFeatures(id="v1", location_city="Recife", location_state="PE")
        assert _score(vacancy=on_site, profile=WorkerProfile("w1", city="Lisbon")).location_score == 30

    def test_salary_deviation_from_midpoint(self):
        vacancy = VacancyFeatures(id="v1", salary_min=4000, salary_max=6000)

        def salary(expected):
            return _score(vacancy=vacancy, profile=WorkerProfile("w1", expected_salary=expected)).salary_score

        assert salary(5000) == 100
        assert salary(6000) == 60
        assert salary(4000) == 60
        assert salary(10000) == 0
        assert salary(None) == 50

    def test_salary_special_cases(self):
        profile = WorkerProfile("w1", expected_salary=4500)
        assert _score(vacancy=VacancyFeatures(id="v1"), profile=profile).salary_score == 50

        negotiable = VacancyFeatures(id="v1", salary_min=1000, salary_max=2000, salary_is_negotiable=True)
        assert _score(vacancy=negotiable, profile=profile).salary_score == 80

        # max defaults to twice the min: midpoint 4500
        min_only = VacancyFeatures(id="v1", salary_min=3000)
        assert _score(vacancy=min_only, profile=profile).salary_score == 100


class TestTotalAndRecommendation:

    @staticmethod
    def _strong_candidate_inputs():
        vacancy_skills = _vacancy_skills(
            required=("A", "B", "C"),
            optional=("D", "E", "F", "G", "H", "I", "J"),
        )
        vacancy = VacancyFeatures(
            id="v1",
            skills=vacancy_skills,
            experience_min_years=1,
            experience_max_years=10,
            education_min_level="HIGH_SCHOOL",
            location_city="Recife",
            salary_min=4000,
            salary_max=6000,
        )
        profile = WorkerProfile("w1", city="Recife", expected_salary=5000)
        return vacancy_skills, vacancy, profile

    def test_batch_mode_requires_half_of_required_skills(self):
        vacancy_skills, vacancy, profile = self._strong_candidate_inputs()
        kwargs = dict(
            worker_skills=("A", "D", "E", "F", "G", "H", "I", "J"),
            vacancy_skills=vacancy_skills,
            experience=_experience(5),
            education=[WorkerEducation("BACHELOR")],
            vacancy=vacancy,
            profile=profile,
        )

        batch = _score(mode=ScoringMode.BATCH, **kwargs)
        assert batch.skill_score == 80
        assert batch.total_score == 92
        assert batch.is_recommended is False

        single = _score(mode=ScoringMode.SINGLE, **kwargs)
        assert single.total_score == 100
        assert single.is_recommended is True

    def test_neutral_pair_is_not_recommended(self):
        result = _score(worker_skills=("X",), mode=ScoringMode.BATCH)
        assert result.total_score == 50
        assert result.is_recommended is False

    def test_weights_sum_to_one(self):
        assert sum(SCORE_WEIGHTS.values()) == pytest.approx(1.0)

    def test_total_matches_weighted_components_and_stays_in_bounds(self):
        vacancies = [
            VacancyFeatures(id="v1"),
            VacancyFeatures(id="v2", experience_min_years=4, experience_max_years=6,
                            education_min_level="MASTER", location_city="Natal",
                            salary_min=3000, salary_max=3500),
            VacancyFeatures(id="v3", experience_max_years=2, location_city="Natal",
                            location_state="RN", is_remote=True, salary_max=9000),
        ]
        skill_sets = [(), ("SQL",), ("SQL", "PYTHON", "GO")]
        years = [0, 3, 30]
        profiles = [None, WorkerProfile("w1", city="natal", expected_salary=100000),
                    WorkerProfile("w1", state="RN", expected_salary=3200)]
        vacancy_skills = _vacancy_skills(required=("SQL", "PYTHON"), optional=("GO",))

        for vacancy, skills, n_years, profile, mode in itertools.product(
                vacancies, skill_sets, years, profiles, ScoringMode):
            result = _score(
                worker_skills=skills,
                vacancy_skills=vacancy_skills,
                experience=_experience(n_years) if n_years else [],
                vacancy=vacancy,
                profile=profile,
                mode=mode,
            )
            expected = weighted_total(
                result.skill_score,
                result.experience_score,
                result.education_score,
                result.location_score,
                result.salary_score,
            )
            assert result.total_score == expected
            for value in (result.skill_score, result.experience_score, result.education_score,
                          result.location_score, result.salary_score, result.total_score):
                assert 0 <= value <= 100
