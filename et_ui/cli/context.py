from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from et_runner.api import Collaborators, RunConfiguration, default_collaborators
from et_runner.services.doctor import DoctorService


@dataclass
class CLIContext:
    """Global options and lazily built services shared by the commands."""

    show_errors: bool = False
    additional_iterations: int = 0
    collaborators_factory: Callable[[RunConfiguration], Collaborators] = default_collaborators

    _doctor_service: Optional[DoctorService] = None

    @property
    def doctor_service(self) -> DoctorService:
        if self._doctor_service is None:
            self._doctor_service = DoctorService()
        return self._doctor_service

    @doctor_service.setter
    def doctor_service(self, value: DoctorService) -> None:
        self._doctor_service = value
