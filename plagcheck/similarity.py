"""
Similarity index normalization for thesis payloads.

The backend reports raw match data; these helpers derive the two scores
shown on dashboards (text plagiarism and AI-generated content) the same
way for every screen.
"""
import math
from typing import Any, Dict, Optional


def _round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _plagiarism_score(thesis: Dict[str, Any]) -> int:
    if thesis.get("plagiarismScore") is not None:
        return _round_half_up(thesis["plagiarismScore"])

    matches = thesis.get("textMatches") or []
    if not matches:
        return 0

    # A single verbatim match makes the whole document 100%
    if any(m.get("similarity") == 100 for m in matches):
        return 100

    total = sum(m.get("similarity") or 0 for m in matches)
    return min(100, _round_half_up(total / len(matches)))


def _ai_score(thesis: Dict[str, Any]) -> int:
    for key in ("aiGeneratedScore", "aiPlagiarismScore"):
        if thesis.get(key) is not None:
            return _round_half_up(thesis[key])
    return 0


def calculate_similarity_index(thesis: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Fill in `plagiarismScore` and `aiPlagiarismScore` for a completed thesis.

    Theses that are not completed (or missing) are returned unchanged.
    Otherwise a shallow copy is returned and the input is left as-is.
    """
    if not thesis or thesis.get("status") != "completed":
        return thesis

    result = dict(thesis)
    result["plagiarismScore"] = _plagiarism_score(thesis)
    result["aiPlagiarismScore"] = _ai_score(thesis)
    return result
