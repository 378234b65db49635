"""Quality decision engine - accept, reject or upgrade a candidate file.

Hey future me - this is the part that is EASY to get subtly wrong (off-by-one cutoffs,
double upgrades, thrash between two equal files). The rules, in order:

1. candidate quality unknown              → Reject("unknown-quality")
2. candidate quality not in the profile   → Reject("quality-not-wanted")
3. no current file                        → AcceptNew (cutoff doesn't matter)
4. current file with unknown quality      → Upgrade (below every included level)
   (a current level the profile doesn't include also ranks below every included one)
5. current rank >= cutoff rank            → KeepCurrent("cutoff-met"), EVEN IF upgrades
                                            are allowed - the cutoff is an absolute ceiling
6. below cutoff:
   - upgrades disabled                    → KeepCurrent("upgrades-disabled")
   - candidate rank >  current rank       → Upgrade
   - candidate rank == current rank       → KeepCurrent("no-improvement")
   - candidate rank <  current rank       → Reject("lower-quality")

decide() is PURE: no I/O, no state, same inputs → same Decision. Call it from as many
handlers concurrently as you like. It never catches anything: it returns a Decision or
raises ConfigurationError for a broken profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mediakeeper.domain.entities.quality_profile import (
    CandidateRelease,
    MediaFile,
    QualityProfile,
)


class DecisionReason(str, Enum):
    """Why a candidate was not taken."""

    UNKNOWN_QUALITY = "unknown-quality"
    QUALITY_NOT_WANTED = "quality-not-wanted"
    CUTOFF_MET = "cutoff-met"
    UPGRADES_DISABLED = "upgrades-disabled"
    NO_IMPROVEMENT = "no-improvement"
    LOWER_QUALITY = "lower-quality"

    def __str__(self) -> str:
        return self.value


# These depend only on the profile and the current file, never on the candidate.
# Once one of them comes back, no other candidate for the same item can do better.
CANDIDATE_INDEPENDENT_REASONS = frozenset(
    {DecisionReason.CUTOFF_MET, DecisionReason.UPGRADES_DISABLED}
)


class DecisionKind(str, Enum):
    """The four possible outcomes."""

    REJECT = "reject"
    ACCEPT_NEW = "accept-new"
    UPGRADE = "upgrade"
    KEEP_CURRENT = "keep-current"


@dataclass(frozen=True)
class Decision:
    """Base class for decision outcomes."""

    @property
    def kind(self) -> DecisionKind:
        raise NotImplementedError

    @property
    def is_accepted(self) -> bool:
        """True for AcceptNew and Upgrade - the candidate should be acquired."""
        return self.kind in (DecisionKind.ACCEPT_NEW, DecisionKind.UPGRADE)

    def to_dict(self) -> dict[str, str | None]:
        """Flat representation for logs and event history."""
        return {"kind": self.kind.value}


@dataclass(frozen=True)
class Reject(Decision):
    """Candidate is not acceptable."""

    reason: DecisionReason

    @property
    def kind(self) -> DecisionKind:
        return DecisionKind.REJECT

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "reason": self.reason.value}


@dataclass(frozen=True)
class AcceptNew(Decision):
    """No current file existed - take the candidate."""

    candidate: CandidateRelease

    @property
    def kind(self) -> DecisionKind:
        return DecisionKind.ACCEPT_NEW

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "candidate": self.candidate.title}


@dataclass(frozen=True)
class Upgrade(Decision):
    """Candidate replaces the current file."""

    candidate: CandidateRelease
    supersedes: str  # current file id

    @property
    def kind(self) -> DecisionKind:
        return DecisionKind.UPGRADE

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": self.kind.value,
            "candidate": self.candidate.title,
            "supersedes": self.supersedes,
        }


@dataclass(frozen=True)
class KeepCurrent(Decision):
    """The current file stays."""

    reason: DecisionReason

    @property
    def kind(self) -> DecisionKind:
        return DecisionKind.KEEP_CURRENT

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "reason": self.reason.value}


def decide(
    profile: QualityProfile,
    candidate: CandidateRelease,
    current_file: MediaFile | None,
) -> Decision:
    """Decide what to do with a candidate for one library item.

    Args:
        profile: Quality profile of the item
        candidate: Release (or finished download) under evaluation
        current_file: The item's current file, or None when it has none

    Returns:
        Reject, AcceptNew, Upgrade or KeepCurrent

    Raises:
        ConfigurationError: Profile has no levels or its cutoff is outside them
    """
    profile.validate()

    candidate_quality = candidate.quality
    if candidate_quality is None:
        return Reject(DecisionReason.UNKNOWN_QUALITY)

    candidate_rank = profile.rank_of(candidate_quality)
    if candidate_rank is None:
        return Reject(DecisionReason.QUALITY_NOT_WANTED)

    if current_file is None:
        return AcceptNew(candidate)

    current_quality = current_file.quality
    if current_quality is None:
        return Upgrade(candidate, supersedes=current_file.id)

    # ranks as the profile saved them, see quality_profile.py
    current_rank = profile.rank_of(current_quality)
    if current_rank is None:
        # a level the profile doesn't include sits below every included one
        current_rank = min(level.rank for level in profile.levels) - 1

    if current_rank >= profile.cutoff_rank:
        return KeepCurrent(DecisionReason.CUTOFF_MET)

    if not profile.upgrade_allowed:
        return KeepCurrent(DecisionReason.UPGRADES_DISABLED)

    if candidate_rank > current_rank:
        return Upgrade(candidate, supersedes=current_file.id)
    if candidate_rank == current_rank:
        return KeepCurrent(DecisionReason.NO_IMPROVEMENT)
    return Reject(DecisionReason.LOWER_QUALITY)


def is_cutoff_unmet(profile: QualityProfile, current_file: MediaFile | None) -> bool:
    """Check whether an item still wants a better file.

    True when there is no file, its quality is unknown or not in the profile, or it
    ranks below the cutoff.

    Raises:
        ConfigurationError: Invalid profile
    """
    profile.validate()
    if current_file is None or current_file.quality is None:
        return True
    current_rank = profile.rank_of(current_file.quality)
    return current_rank is None or current_rank < profile.cutoff_rank
