"""Domain entities."""

from mediakeeper.domain.entities.quality_decision import (
    CANDIDATE_INDEPENDENT_REASONS,
    AcceptNew,
    Decision,
    DecisionKind,
    DecisionReason,
    KeepCurrent,
    Reject,
    Upgrade,
    decide,
    is_cutoff_unmet,
)
from mediakeeper.domain.entities.quality_profile import (
    CandidateRelease,
    MediaFile,
    QualityProfile,
)
from mediakeeper.domain.entities.scheduled_task import (
    DEFAULT_TASKS,
    TaskDefinition,
    TaskOutcome,
    TaskRunState,
    TaskRunStatus,
    TaskTrigger,
    TaskType,
    default_definition,
    default_definitions,
)

__all__ = [
    "CANDIDATE_INDEPENDENT_REASONS",
    "DEFAULT_TASKS",
    "AcceptNew",
    "CandidateRelease",
    "Decision",
    "DecisionKind",
    "DecisionReason",
    "KeepCurrent",
    "MediaFile",
    "QualityProfile",
    "Reject",
    "TaskDefinition",
    "TaskOutcome",
    "TaskRunState",
    "TaskRunStatus",
    "TaskTrigger",
    "TaskType",
    "Upgrade",
    "decide",
    "default_definition",
    "default_definitions",
    "is_cutoff_unmet",
]
