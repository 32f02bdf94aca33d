"""Service version and VCL configuration entities.

Fastly configuration is edited on a versioned snapshot: the active
version is cloned, the clone is edited and validated, and finally
activated in place of the previous one.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class VersionState(Enum):
    """Progress of one edit session on a service version."""

    NONE = "none"
    CLONED = "cloned"
    VALIDATED = "validated"
    ACTIVATED = "activated"


@dataclass(frozen=True)
class ServiceVersion:
    """A snapshot of a service configuration."""

    number: int
    active: bool = False
    locked: bool = False
    comment: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ServiceVersion":
        """Create a ServiceVersion from an API response object.

        Args:
            data: One element of ``GET /service/{id}/version``.

        Returns:
            A new ServiceVersion instance.
        """
        return cls(
            number=int(data["number"]),
            active=bool(data.get("active")),
            locked=bool(data.get("locked")),
            comment=data.get("comment") or "",
        )


@dataclass(frozen=True)
class VclSnippet:
    """A VCL snippet attached to a subroutine of a service version.

    Attributes:
        name: Unique snippet name within the version.
        type: VCL subroutine the snippet is placed in (recv, deliver, ...).
        content: The VCL code.
        priority: Ordering among snippets of the same type, lower first.
        dynamic: 0 for versioned snippets, 1 for dynamic ones.
    """

    name: str
    type: str
    content: str
    priority: int = 50
    dynamic: int = 0

    def to_form(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Condition:
    """A named VCL condition."""

    name: str
    statement: str
    type: str = "REQUEST"
    priority: int = 10

    def to_form(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RequestSetting:
    """Request settings applied when a condition matches."""

    name: str
    action: str
    request_condition: str

    def to_form(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResponseObject:
    """A synthetic response served by the edge when a condition matches."""

    name: str
    content: str
    request_condition: str
    status: str = "503"
    response: str = "Service Temporarily Unavailable"

    def to_form(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VclRequest:
    """A prepared request against the version API, sent later in a batch."""

    url: str
    method: str
    data: dict[str, Any] = field(default_factory=dict)
