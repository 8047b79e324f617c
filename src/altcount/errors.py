"""Exceptions raised by altcount."""

from __future__ import annotations


class AlterationCountError(Exception):
    """Base class for altcount errors."""


class NotFoundError(AlterationCountError, LookupError):
    """A referenced entity does not exist in the backing store."""


class StudyNotFoundError(NotFoundError):
    """A study referenced by the filter scope does not exist."""

    def __init__(self, study_id: str) -> None:
        super().__init__(f"Study not found: {study_id}")
        self.study_id = study_id


class MolecularProfileNotFoundError(NotFoundError):
    """A molecular profile referenced by a count query does not exist."""

    def __init__(self, stable_id: str) -> None:
        super().__init__(f"Molecular profile not found: {stable_id}")
        self.stable_id = stable_id


class RunConfigError(AlterationCountError, ValueError):
    """A run configuration failed schema or semantic validation."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = list(problems or [])
