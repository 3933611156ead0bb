#!/usr/bin/env python3
"""
Exceptions raised by the matching core.
"""


class MatchingException(Exception):
    """Base exception for matching layer errors."""
    pass


class WorkerNotFoundException(MatchingException):
    """Raised when a worker profile is missing at computation time."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        self.code = 'WORKER_NOT_FOUND'
        super().__init__(f"Worker not found: {worker_id}")


class VacancyNotFoundException(MatchingException):
    """Raised when a vacancy is missing (or soft-deleted) at computation time."""

    def __init__(self, vacancy_id: str):
        self.vacancy_id = vacancy_id
        self.code = 'VACANCY_NOT_FOUND'
        super().__init__(f"Vacancy not found: {vacancy_id}")


class InvalidJobPayloadException(MatchingException, ValueError):
    """Raised when a queued recalculation job is missing its subject id or has an unknown type."""
    pass
