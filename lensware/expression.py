"""
Expression tags derived from face landmarks.

A coarse landmark heuristic, used only when the detector did not attach an
expression of its own. Tags are comma-joined (``"smile, surprised"``) so the
caption buckets can match on substrings.
"""

from typing import List, Optional, Sequence

from .models import FaceLandmarks, Point

# Mean eyebrow height (face-normalized) above which brows count as raised
RAISED_BROW_HEIGHT = 0.6


def _is_smiling(outer_lips: Sequence[Point]) -> bool:
    if len(outer_lips) < 4:
        return False
    n = len(outer_lips)
    top_center = outer_lips[n // 4]
    bottom_center = outer_lips[3 * n // 4]
    return top_center[1] > bottom_center[1]


def _mean_height(points: Sequence[Point]) -> float:
    return sum(p[1] for p in points) / len(points)


def _brows_raised(left: Sequence[Point], right: Sequence[Point]) -> bool:
    if not left or not right:
        return False
    return _mean_height(left) > RAISED_BROW_HEIGHT and _mean_height(right) > RAISED_BROW_HEIGHT


def analyze_expression(landmarks: Optional[FaceLandmarks]) -> Optional[str]:
    """Return an expression tag, ``"neutral"`` when nothing stands out."""
    if landmarks is None:
        return None

    expressions: List[str] = []

    if landmarks.outer_lips and _is_smiling(landmarks.outer_lips):
        expressions.append("smile")

    if landmarks.left_eyebrow and landmarks.right_eyebrow:
        if _brows_raised(landmarks.left_eyebrow, landmarks.right_eyebrow):
            expressions.append("surprised")

    return ", ".join(expressions) if expressions else "neutral"
