"""
edubridge/services/reviewer_scope.py
Which pending materials a lecturer may review

Resolved once per profile load, in priority order:
1. ExplicitScope   - teaching_subjects / programmes lists
2. LegacyScope     - the single legacy `program` field
3. UnassignedScope - nothing configured; covers nothing
"""
import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Union

from sqlalchemy import false

from edubridge.config.feature_flags import FeatureFlags
from edubridge.orm.material import Material
from edubridge.orm.user import User, LEGACY_PROGRAM_UNSET

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplicitScope:
    subjects: FrozenSet[str] = field(default_factory=frozenset)
    programmes: FrozenSet[str] = field(default_factory=frozenset)

    kind = "explicit"

    def covers(self, material) -> bool:
        # Subject codes are the finer grain; programmes only apply without them
        if self.subjects:
            return material.subject_code in self.subjects
        return material.programme_id in self.programmes

    def filter_clause(self):
        if self.subjects:
            return Material.subject_code.in_(sorted(self.subjects))
        return Material.programme_id.in_(sorted(self.programmes))

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "subjects": sorted(self.subjects),
            "programmes": sorted(self.programmes),
        }


@dataclass(frozen=True)
class LegacyScope:
    programme: str

    kind = "legacy"

    def covers(self, material) -> bool:
        return material.programme_id == self.programme

    def filter_clause(self):
        return Material.programme_id == self.programme

    def to_dict(self) -> dict:
        return {"kind": self.kind, "programme": self.programme}


@dataclass(frozen=True)
class UnassignedScope:
    kind = "unassigned"

    def covers(self, material) -> bool:
        return False

    def filter_clause(self):
        return false()

    def to_dict(self) -> dict:
        return {"kind": self.kind}


ReviewerScope = Union[ExplicitScope, LegacyScope, UnassignedScope]


def resolve_reviewer_scope(user: User) -> ReviewerScope:
    """Resolve the review scope of a lecturer profile."""
    subjects = frozenset(code for code in (user.teaching_subjects or []) if code)
    programmes = frozenset(pid for pid in (user.programmes or []) if pid)

    if subjects or programmes:
        return ExplicitScope(subjects=subjects, programmes=programmes)

    legacy = (user.program or "").strip()
    if legacy and legacy != LEGACY_PROGRAM_UNSET and FeatureFlags.FEATURE_LEGACY_PROGRAM_SCOPE:
        return LegacyScope(programme=legacy)

    logger.warning(
        f"Lecturer {user.id} has no teaching subjects, programmes or legacy program; "
        f"review scope is unassigned"
    )
    return UnassignedScope()
