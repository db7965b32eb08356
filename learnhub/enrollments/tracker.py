"""Enrollment progress rules.

Pure functions that keep an enrollment's progress, completed modules and
status consistent. They mutate the enrollment passed in and return it; the
service decides when the result is persisted.

Rules:
- progress is clamped into 0..100 and rounded to an integer
- progress >= 100 sets status completed, 0 < progress < 100 sets active,
  progress == 0 leaves the status as it was
- completing a module records it once; completing it again is a no-op
- completing a module never changes progress
"""

import math
from datetime import UTC, datetime

from learnhub.enrollments.models import Enrollment, EnrollmentStatus


MIN_PROGRESS = 0
MAX_PROGRESS = 100


def clamp_progress(value: float) -> int:
    """Clamp a progress value into [0, 100] and round half up.

    Examples:
        >>> clamp_progress(150)
        100
        >>> clamp_progress(-20)
        0
        >>> clamp_progress(66.5)
        67
    """
    clamped = max(MIN_PROGRESS, min(MAX_PROGRESS, value))
    return int(math.floor(clamped + 0.5))


def derive_status(progress: int, current: str) -> str:
    """Status implied by a progress value."""
    if progress >= MAX_PROGRESS:
        return EnrollmentStatus.COMPLETED.value
    if progress > MIN_PROGRESS:
        return EnrollmentStatus.ACTIVE.value
    return current


def complete_module(
    enrollment: Enrollment,
    module_index: int,
    now: datetime | None = None,
) -> Enrollment:
    """Record a module as completed unless it already is."""
    if module_index < 0:
        msg = f"module_index must be non-negative, got {module_index}"
        raise ValueError(msg)
    if not enrollment.has_completed_module(module_index):
        enrollment.completed_modules[module_index] = now or datetime.now(UTC)
    return enrollment


def set_progress(enrollment: Enrollment, progress: float) -> Enrollment:
    """Set the clamped progress and recompute the status."""
    enrollment.progress = clamp_progress(progress)
    enrollment.status = derive_status(enrollment.progress, enrollment.status)
    return enrollment


def apply_update(
    enrollment: Enrollment,
    module_index: int | None = None,
    progress: float | None = None,
    now: datetime | None = None,
) -> Enrollment:
    """Apply a combined update; each part is optional and independent."""
    if module_index is not None:
        complete_module(enrollment, module_index, now)
    if progress is not None:
        set_progress(enrollment, progress)
    return enrollment
