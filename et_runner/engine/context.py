"""Trial-scoped state threaded through the orchestration steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from et_common.errors import error_to_payload
from et_common.logging import get_logger


@dataclass
class TrialErrors:
    """Ordered errors recorded during one trial.

    Fatal errors are never recorded: :meth:`record` re-raises them so they
    abort the run. With ``show_live`` each recorded error is logged as a
    ``trial_error`` event the moment it is recorded.
    """

    show_live: bool = False
    _errors: list[BaseException] = field(default_factory=list)

    def record(self, error: BaseException) -> None:
        if getattr(error, "fatal", False):
            raise error
        self._errors.append(error)
        if self.show_live:
            payload = error_to_payload(error)
            get_logger(__name__).error(
                "trial_error",
                error_type=payload["error_type"],
                error=payload["error"],
                context=payload["error_context"],
            )

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(list(self._errors))

    def __bool__(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> tuple[BaseException, ...]:
        return tuple(self._errors)

    def snapshot(self) -> list[dict[str, Any]]:
        """Return JSON-ready payloads for the errors recorded so far."""
        return [error_to_payload(error) for error in self._errors]
