"""Report persistence port."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from kscan.domain.report.model.value import Report
from kscan.domain.workload.model.value import ObjectRef


@runtime_checkable
class ReportWriter(Protocol):
    @abstractmethod
    async def write(self, reports: list[Report]) -> None:
        """Create or update each report, keyed by name and namespace."""
        ...


@runtime_checkable
class ReportReader(Protocol):
    @abstractmethod
    async def find_by_owner(self, owner: ObjectRef) -> list[Report]:
        """Reports labelled with the owner's kind, name and namespace."""
        ...

    @abstractmethod
    async def find_by_owner_in_hierarchy(self, owner: ObjectRef) -> list[Report]:
        """Like ``find_by_owner``, falling back to the owner's managed replica set.

        The fallback only applies to Deployments and Pods, and only when the
        owner itself has no reports.
        """
        ...


@runtime_checkable
class ReportReadWriter(ReportReader, ReportWriter, Protocol):
    """Durable store of report records."""
