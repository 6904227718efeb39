"""
app/services/quota_tracker.py

Run-scoped quota bookkeeping and round-robin credential selection.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from app.domain.indexing import AuthorizedCredential

T = TypeVar("T")


def select_credential(eligible: Sequence[T], index: int) -> T | None:
    """
    Pick the credential for the URL at batch position `index`.

    Pure round-robin over whatever is eligible right now, so a credential
    removed mid-batch is skipped from the next URL on.
    """

    if not eligible:
        return None
    return eligible[index % len(eligible)]


@dataclass
class QuotaState:
    exhausted: bool = False
    used_this_run: int = 0


class QuotaTracker:
    """
    Tracks exhaustion and usage per credential for a single dispatch run.

    Build a new tracker for every run; state is never shared across runs.
    """

    def __init__(
        self,
        credentials: Sequence[AuthorizedCredential],
        *,
        daily_unit_cap: int,
    ) -> None:
        if daily_unit_cap < 1:
            raise ValueError("daily_unit_cap must be at least 1.")
        self._credentials = list(credentials)
        self._daily_unit_cap = daily_unit_cap
        self._states: dict[str, QuotaState] = {
            credential.identifier: QuotaState() for credential in self._credentials
        }

    @property
    def daily_unit_cap(self) -> int:
        return self._daily_unit_cap

    def eligible_credentials(self) -> list[AuthorizedCredential]:
        return [
            credential
            for credential in self._credentials
            if self._is_eligible(self._states[credential.identifier])
        ]

    def select(self, index: int) -> AuthorizedCredential | None:
        return select_credential(self.eligible_credentials(), index)

    def mark_exhausted(self, credential: AuthorizedCredential) -> None:
        self._state_for(credential).exhausted = True

    def record_use(self, credential: AuthorizedCredential) -> None:
        state = self._state_for(credential)
        if state.used_this_run >= self._daily_unit_cap:
            raise RuntimeError(
                f"Credential {credential.identifier} already used its "
                f"{self._daily_unit_cap} units for this run."
            )
        state.used_this_run += 1

    def is_exhausted(self, credential: AuthorizedCredential) -> bool:
        return self._state_for(credential).exhausted

    def used(self, credential: AuthorizedCredential) -> int:
        return self._state_for(credential).used_this_run

    def usage(self) -> dict[str, int]:
        return {identifier: state.used_this_run for identifier, state in self._states.items()}

    def batch_capacity(self) -> int:
        return self._daily_unit_cap * len(self.eligible_credentials())

    def _is_eligible(self, state: QuotaState) -> bool:
        return not state.exhausted and state.used_this_run < self._daily_unit_cap

    def _state_for(self, credential: AuthorizedCredential) -> QuotaState:
        try:
            return self._states[credential.identifier]
        except KeyError:
            raise KeyError(f"Credential {credential.identifier} is not part of this run.") from None
