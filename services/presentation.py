import math
from typing import Any, Dict, List

from models.screening_model import ScreeningResult


def _by_score(results: List[ScreeningResult]) -> List[ScreeningResult]:
    return sorted(results, key=lambda r: r.score, reverse=True)


def contract_violations(results: List[ScreeningResult]) -> List[str]:
    """Ids of results whose status disagrees with the score threshold, left as received."""
    return [r.cv_id for r in results if not r.honours_threshold()]


def summarize(results: List[ScreeningResult]) -> Dict[str, Any]:
    selected = [r for r in results if r.status == "selected"]
    rejected = [r for r in results if r.status == "rejected"]
    average = math.floor(sum(r.score for r in results) / len(results) + 0.5) if results else 0

    return {
        "total": len(results),
        "selected": len(selected),
        "rejected": len(rejected),
        "averageScore": average,
        "selectedCandidates": [r.to_wire() for r in _by_score(selected)],
        "rejectedCandidates": [r.to_wire() for r in _by_score(rejected)],
        "ranked": [r.to_wire() for r in _by_score(results)],
        "contractViolations": contract_violations(results),
    }
