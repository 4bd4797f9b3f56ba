"""
Terminal reference chain.

Every terminal transaction in a session carries (reference, last_reference).
The chain advances only after a transaction is approved; a failed part
never consumed its reference.
"""
from __future__ import annotations

from dataclasses import dataclass

from domain.common.exceptions import DomainValidationException


@dataclass(frozen=True)
class ReferenceChain:
    reference: int
    last_reference: str

    @classmethod
    def start(cls, reference: str, last_reference: str) -> "ReferenceChain":
        try:
            current = int(str(reference).strip())
        except ValueError as exc:
            raise DomainValidationException(
                f"reference must be an integer string, got {reference!r}",
                field="reference",
            ) from exc
        return cls(reference=current, last_reference=str(last_reference))

    @property
    def current(self) -> str:
        return str(self.reference)

    def advance(self) -> "ReferenceChain":
        """Chain for the next transaction after this one was approved"""
        return ReferenceChain(reference=self.reference + 1, last_reference=self.current)
