"""Result shapes returned by the matching service."""
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass
class RecalcResult:
    """Outcome of one recalculation run."""
    calculated: int = 0
    batches: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
