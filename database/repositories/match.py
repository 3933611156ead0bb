import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert

from core.scorer.models import (
    ScoreComponents,
    ScoreResult,
    VacancyFeatures,
    VacancySkill,
    WorkerEducation,
    WorkerExperience,
    WorkerFeatures,
    WorkerProfile,
    WorkerSkill,
)
from database.models import (
    MatchScore,
    Vacancy,
    VacancySkill as VacancySkillRow,
    WorkerEducation as WorkerEducationRow,
    WorkerExperience as WorkerExperienceRow,
    WorkerProfile as WorkerProfileRow,
    WorkerSkill as WorkerSkillRow,
)
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


@dataclass
class Page:
    items: List[str] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = MAX_PAGE_SIZE

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)


def _canonical_id(value: Any) -> Optional[str]:
    """Lowercase hyphenated UUID string, or None when value is not a UUID."""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return None


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _to_worker_profile(row: WorkerProfileRow) -> WorkerProfile:
    return WorkerProfile(
        worker_id=str(row.user_id),
        city=row.city,
        state=row.state,
        expected_salary=_to_float(row.expected_salary),
        status=row.status,
    )


def _to_worker_skill(row: WorkerSkillRow) -> WorkerSkill:
    return WorkerSkill(code=row.skill_code, name=row.skill_name)


def _to_worker_education(row: WorkerEducationRow) -> WorkerEducation:
    return WorkerEducation(degree_level=row.degree_level)


def _to_worker_experience(row: WorkerExperienceRow) -> WorkerExperience:
    return WorkerExperience(start_year=row.start_year, end_year=row.end_year)


def _to_vacancy_skill(row: VacancySkillRow) -> VacancySkill:
    return VacancySkill(code=row.skill_code, name=row.skill_name, is_required=bool(row.is_required))


def _to_vacancy_features(row: Vacancy, skills: List[VacancySkill]) -> VacancyFeatures:
    return VacancyFeatures(
        id=str(row.id),
        skills=skills,
        experience_min_years=row.experience_min_years,
        experience_max_years=row.experience_max_years,
        education_min_level=row.education_min_level,
        location_city=row.location_city,
        location_state=row.location_state,
        is_remote=bool(row.is_remote),
        salary_min=_to_float(row.salary_min),
        salary_max=_to_float(row.salary_max),
        salary_is_negotiable=bool(row.salary_is_negotiable),
        status=row.status,
    )


def _to_score_result(row: MatchScore) -> ScoreResult:
    return ScoreResult(
        worker_id=str(row.worker_id),
        vacancy_id=str(row.vacancy_id),
        total_score=float(row.total_score),
        skill_score=float(row.skill_score),
        experience_score=float(row.experience_score),
        education_score=float(row.education_score),
        location_score=float(row.location_score),
        salary_score=float(row.salary_score),
        skill_match_count=row.skill_match_count,
        skill_required_count=row.skill_required_count,
        is_recommended=bool(row.is_recommended),
    )


class MatchRepository(BaseRepository):
    """
    Data access for the matching core.

    Single-entity reads back calculate_score; the *_batch reads back
    recalculation and fetch a whole page of candidates with one query per
    feature kind instead of one per candidate.
    """

    # ============ Single-entity reads ============
    # Ids are UUID columns; an id that does not parse as a UUID matches nothing.

    async def get_vacancy(self, vacancy_id: Any) -> Optional[VacancyFeatures]:
        vacancy_id = _canonical_id(vacancy_id)
        if vacancy_id is None:
            return None

        async with self.session() as session:
            row = (await session.execute(
                select(Vacancy).where(
                    Vacancy.id == vacancy_id,
                    Vacancy.deleted_at.is_(None)
                )
            )).scalar_one_or_none()
            if row is None:
                return None

            skills = (await session.execute(
                select(VacancySkillRow).where(
                    VacancySkillRow.vacancy_id == vacancy_id,
                    VacancySkillRow.deleted_at.is_(None)
                )
            )).scalars().all()
            return _to_vacancy_features(row, [_to_vacancy_skill(s) for s in skills])

    async def get_vacancy_skills(self, vacancy_id: Any) -> List[VacancySkill]:
        vacancy_id = _canonical_id(vacancy_id)
        if vacancy_id is None:
            return []

        async with self.session() as session:
            rows = (await session.execute(
                select(VacancySkillRow).where(
                    VacancySkillRow.vacancy_id == vacancy_id,
                    VacancySkillRow.deleted_at.is_(None)
                )
            )).scalars().all()
            return [_to_vacancy_skill(r) for r in rows]

    async def get_worker_profile(self, worker_id: Any) -> Optional[WorkerProfile]:
        worker_id = _canonical_id(worker_id)
        if worker_id is None:
            return None

        async with self.session() as session:
            row = (await session.execute(
                select(WorkerProfileRow).where(
                    WorkerProfileRow.user_id == worker_id,
                    WorkerProfileRow.deleted_at.is_(None)
                )
            )).scalar_one_or_none()
            return _to_worker_profile(row) if row is not None else None

    async def _worker_rows(self, model, worker_id: Any) -> list:
        worker_id = _canonical_id(worker_id)
        if worker_id is None:
            return []

        async with self.session() as session:
            return (await session.execute(
                select(model).where(
                    model.user_id == worker_id,
                    model.deleted_at.is_(None)
                )
            )).scalars().all()

    async def get_worker_skills(self, worker_id: Any) -> List[WorkerSkill]:
        return [_to_worker_skill(r) for r in await self._worker_rows(WorkerSkillRow, worker_id)]

    async def get_worker_education(self, worker_id: Any) -> List[WorkerEducation]:
        return [_to_worker_education(r) for r in await self._worker_rows(WorkerEducationRow, worker_id)]

    async def get_worker_experience(self, worker_id: Any) -> List[WorkerExperience]:
        return [_to_worker_experience(r) for r in await self._worker_rows(WorkerExperienceRow, worker_id)]

    async def get_worker_features(self, worker_id: Any) -> WorkerFeatures:
        """All scorer inputs for one worker. profile is None when the worker has no live profile."""
        features = await self.get_workers_batch([worker_id])
        return features[_canonical_id(worker_id) or str(worker_id)]

    # ============ Batch reads ============

    async def get_vacancies_batch(self, vacancy_ids: List[Any]) -> Dict[str, VacancyFeatures]:
        """
        Fetch vacancies and their skills for many ids in two queries.

        Results are keyed by canonical (lowercase) UUID string. Ids with no
        live vacancy are absent; every returned vacancy carries a (possibly
        empty) skills list.
        """
        vacancy_ids = [vid for vid in (_canonical_id(v) for v in vacancy_ids) if vid is not None]
        if not vacancy_ids:
            return {}

        async with self.session() as session:
            vacancies = (await session.execute(
                select(Vacancy).where(
                    Vacancy.id.in_(vacancy_ids),
                    Vacancy.deleted_at.is_(None)
                )
            )).scalars().all()

            skill_rows = (await session.execute(
                select(VacancySkillRow).where(
                    VacancySkillRow.vacancy_id.in_(vacancy_ids),
                    VacancySkillRow.deleted_at.is_(None)
                )
            )).scalars().all()

        skills_by_vacancy: Dict[str, List[VacancySkill]] = {}
        for skill in skill_rows:
            skills_by_vacancy.setdefault(_canonical_id(skill.vacancy_id), []).append(_to_vacancy_skill(skill))

        return {
            _canonical_id(v.id): _to_vacancy_features(v, skills_by_vacancy.get(_canonical_id(v.id), []))
            for v in vacancies
        }

    async def get_workers_batch(self, worker_ids: List[Any]) -> Dict[str, WorkerFeatures]:
        """
        Fetch profile, skills, education and experience for many workers, one query per kind.

        Every requested id is present in the result, keyed by canonical
        (lowercase) UUID string, or as given when it is not a UUID. Workers
        without data get empty lists and a None profile.
        """
        if not worker_ids:
            return {}

        keys = [_canonical_id(wid) or str(wid) for wid in worker_ids]
        result: Dict[str, WorkerFeatures] = {key: WorkerFeatures(worker_id=key) for key in keys}
        worker_ids = [wid for wid in (_canonical_id(w) for w in worker_ids) if wid is not None]
        if not worker_ids:
            return result

        async with self.session() as session:
            profiles = (await session.execute(
                select(WorkerProfileRow).where(
                    WorkerProfileRow.user_id.in_(worker_ids),
                    WorkerProfileRow.deleted_at.is_(None)
                )
            )).scalars().all()

            skills = (await session.execute(
                select(WorkerSkillRow).where(
                    WorkerSkillRow.user_id.in_(worker_ids),
                    WorkerSkillRow.deleted_at.is_(None)
                )
            )).scalars().all()

            education = (await session.execute(
                select(WorkerEducationRow).where(
                    WorkerEducationRow.user_id.in_(worker_ids),
                    WorkerEducationRow.deleted_at.is_(None)
                )
            )).scalars().all()

            experience = (await session.execute(
                select(WorkerExperienceRow).where(
                    WorkerExperienceRow.user_id.in_(worker_ids),
                    WorkerExperienceRow.deleted_at.is_(None)
                )
            )).scalars().all()

        for row in profiles:
            result[_canonical_id(row.user_id)].profile = _to_worker_profile(row)
        for row in skills:
            result[_canonical_id(row.user_id)].skills.append(_to_worker_skill(row))
        for row in education:
            result[_canonical_id(row.user_id)].education.append(_to_worker_education(row))
        for row in experience:
            result[_canonical_id(row.user_id)].experience.append(_to_worker_experience(row))

        return result

    # ============ Populations ============

    async def get_open_vacancy_ids(self, page: int, page_size: int) -> Page:
        """One page of OPEN vacancy ids, ordered by (created_at, id) so paging is stable."""
        page_size = min(page_size, MAX_PAGE_SIZE)
        conditions = (Vacancy.status == 'OPEN', Vacancy.deleted_at.is_(None))

        async with self.session() as session:
            ids = (await session.execute(
                select(Vacancy.id)
                .where(*conditions)
                .order_by(Vacancy.created_at, Vacancy.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )).scalars().all()

            total = (await session.execute(
                select(func.count()).select_from(Vacancy).where(*conditions)
            )).scalar_one()

        return Page(items=[str(i) for i in ids], total_count=total, page=page, page_size=page_size)

    async def get_active_worker_ids(self, page: int, page_size: int) -> Page:
        """One page of ACTIVE worker ids, ordered by (created_at, user_id) so paging is stable."""
        page_size = min(page_size, MAX_PAGE_SIZE)
        conditions = (WorkerProfileRow.status == 'ACTIVE', WorkerProfileRow.deleted_at.is_(None))

        async with self.session() as session:
            ids = (await session.execute(
                select(WorkerProfileRow.user_id)
                .where(*conditions)
                .order_by(WorkerProfileRow.created_at, WorkerProfileRow.user_id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )).scalars().all()

            total = (await session.execute(
                select(func.count()).select_from(WorkerProfileRow).where(*conditions)
            )).scalar_one()

        return Page(items=[str(i) for i in ids], total_count=total, page=page, page_size=page_size)

    # ============ Match scores ============

    async def upsert_match_score(self, worker_id: Any, vacancy_id: Any, components: ScoreComponents) -> None:
        """Insert or overwrite the pair's row. Last write wins; calculated_at is refreshed."""
        values = {name: getattr(components, name) for name in ScoreComponents.__dataclass_fields__}
        stmt = insert(MatchScore).values(
            worker_id=worker_id,
            vacancy_id=vacancy_id,
            **values
        ).on_conflict_do_update(
            index_elements=['worker_id', 'vacancy_id'],
            set_={
                **values,
                'calculated_at': func.timezone('UTC', func.now()),
            }
        )
        async with self.session() as session:
            await session.execute(stmt)

    async def find_match_score(self, worker_id: Any, vacancy_id: Any) -> Optional[ScoreResult]:
        worker_id, vacancy_id = _canonical_id(worker_id), _canonical_id(vacancy_id)
        if worker_id is None or vacancy_id is None:
            return None

        async with self.session() as session:
            row = (await session.execute(
                select(MatchScore).where(
                    MatchScore.worker_id == worker_id,
                    MatchScore.vacancy_id == vacancy_id
                )
            )).scalar_one_or_none()
            return _to_score_result(row) if row is not None else None

    async def get_worker_matches(self, worker_id: Any, limit: int = 20) -> List[ScoreResult]:
        worker_id = _canonical_id(worker_id)
        if worker_id is None:
            return []

        async with self.session() as session:
            rows = (await session.execute(
                select(MatchScore)
                .where(MatchScore.worker_id == worker_id)
                .order_by(MatchScore.total_score.desc())
                .limit(limit)
            )).scalars().all()
            return [_to_score_result(r) for r in rows]

    async def get_recommended_matches(self, vacancy_id: Any, limit: int = 20) -> List[ScoreResult]:
        vacancy_id = _canonical_id(vacancy_id)
        if vacancy_id is None:
            return []

        async with self.session() as session:
            rows = (await session.execute(
                select(MatchScore)
                .where(
                    MatchScore.vacancy_id == vacancy_id,
                    MatchScore.is_recommended.is_(True)
                )
                .order_by(MatchScore.total_score.desc())
                .limit(limit)
            )).scalars().all()
            return [_to_score_result(r) for r in rows]
