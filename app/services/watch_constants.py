"""Progress thresholds shared by the watch history store and the resume logic."""

# Below this percentage a play is treated as an accidental tap.
MINIMUM_PROGRESS_THRESHOLD = 10

# At or above this percentage an item counts as watched (credits excluded).
COMPLETION_THRESHOLD = 90


def is_in_progress(progress: float) -> bool:
    return MINIMUM_PROGRESS_THRESHOLD <= progress < COMPLETION_THRESHOLD


def is_completed(progress: float) -> bool:
    return progress >= COMPLETION_THRESHOLD
