"""Record Events: payload builders for the broadcast channel.

Invariants:
    - RecordCreated carries exactly {id, left, right, operation, result}
    - RecordDeactivated carries exactly {id}
    - ids are serialized as strings (JSON has no UUID type)

Design Decisions:
    - No RecordUpdated builder: replacements are not broadcast (see DESIGN.md)
    - Payloads deliberately omit owner and pagination context; receivers re-fetch
"""

from calcsync.core.domain_types import RecordEvent
from calcsync.core.repository_protocols import CalculationLike


def record_created(record: CalculationLike) -> tuple[str, dict]:
    return RecordEvent.CREATED.value, {
        "id": str(record.id),
        "left": record.left,
        "right": record.right,
        "operation": str(record.operation),
        "result": record.result,
    }


def record_deactivated(record: CalculationLike) -> tuple[str, dict]:
    return RecordEvent.DEACTIVATED.value, {"id": str(record.id)}
