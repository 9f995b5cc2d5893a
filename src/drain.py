"""
Drain-skip deciders: whether an instance's job may be stopped without draining.
"""

from typing import Iterable, Optional


class AlwaysSkipDrain:
    """Never drain, whatever the job."""

    def for_job(self, job_name: str) -> bool:
        return True


class SkipDrain:
    """Skip draining for all jobs or a named subset."""

    def __init__(self, jobs: Optional[Iterable[str]] = None, all_jobs: bool = False):
        self.all_jobs = all_jobs
        self.jobs = frozenset(jobs or ())

    @classmethod
    def from_param(cls, param: Optional[str]) -> "SkipDrain":
        """
        Parse a skip-drain parameter.

        Args:
            param: "*" for every job, a comma separated job list, or empty

        Returns:
            SkipDrain instance
        """
        value = (param or "").strip()
        if value == "*":
            return cls(all_jobs=True)
        return cls(jobs=[j.strip() for j in value.split(",") if j.strip()])

    def for_job(self, job_name: str) -> bool:
        return self.all_jobs or job_name in self.jobs
