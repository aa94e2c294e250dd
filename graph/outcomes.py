from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple, Union


@dataclass(frozen=True)
class Success:
    lead_id: str
    contact_id: str
    updated_fields: Dict[str, Any]
    hubspot_status: int = 200
    hubspot_result: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NoLeadId:
    pass


@dataclass(frozen=True)
class NoEmail:
    lead_id: str


@dataclass(frozen=True)
class NoContactFound:
    lead_id: str
    email: str


@dataclass(frozen=True)
class UpdateFailed:
    lead_id: str
    contact_id: str
    reason: Dict[str, Any]
    hubspot_status: Optional[int] = None


@dataclass(frozen=True)
class UpstreamError:
    reason: str


SyncOutcome = Union[Success, NoLeadId, NoEmail, NoContactFound, UpdateFailed, UpstreamError]


def to_response(outcome: SyncOutcome) -> Tuple[int, Dict[str, Any]]:
    """Map a terminal sync outcome to an HTTP status code and JSON body."""
    if isinstance(outcome, Success):
        return 200, {
            "status": "success",
            "lead_id": outcome.lead_id,
            "contact_id": outcome.contact_id,
            "updated_fields": outcome.updated_fields,
            "hubspot_status": outcome.hubspot_status,
            "hubspot_result": outcome.hubspot_result,
        }
    if isinstance(outcome, NoLeadId):
        return 400, {"message": "No lead_id found"}
    if isinstance(outcome, NoEmail):
        return 200, {"status": "no_email", "lead_id": outcome.lead_id}
    if isinstance(outcome, NoContactFound):
        return 200, {
            "status": "contact_not_found",
            "lead_id": outcome.lead_id,
            "email": outcome.email,
        }
    if isinstance(outcome, UpdateFailed):
        # The delivery itself was handled; HubSpot's rejection is reported in the body
        return 200, {
            "status": "failed",
            "lead_id": outcome.lead_id,
            "contact_id": outcome.contact_id,
            "hubspot_status": outcome.hubspot_status,
            "hubspot_result": outcome.reason,
        }
    if isinstance(outcome, UpstreamError):
        return 500, {"error": outcome.reason}
    raise TypeError(f"Unknown sync outcome: {outcome!r}")
