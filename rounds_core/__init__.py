from .advancement import AdvancementEngine
from .competition import CompetitionAdmin
from .config import Settings, get_settings
from .errors import (
    AccessDenied,
    CannotRemove,
    EventUnrecognized,
    Forbidden,
    InvalidArgument,
    InvalidCount,
    InvalidFormat,
    InvalidPosition,
    InvalidRound,
    NoNextRound,
    NotFound,
    RoundsCoreError,
    TooManyRounds,
    Unauthenticated,
)
from .lifecycle import RoundLifecycleManager, RoundState
from .locks import EventLocks
from .permissions import IdentityResolver, PermissionGuard, StaticIdentityResolver
from .reconcile import MembershipDiff, diff_membership
from .round_codes import assign_code, final_round_code
from .ruleset import DEFAULT_RULESET, EventSpec, RoundCodes, Ruleset, get_ruleset, load_ruleset
from .service import RoundsService
from .store import DocumentStore, InMemoryStore
from .types import CompetitionDoc, GroupDoc, ResultDoc, RoundDoc
from .validation import InputSanitizer

__all__ = [
    "AdvancementEngine",
    "CompetitionAdmin",
    "RoundLifecycleManager",
    "RoundState",
    "RoundsService",
    "PermissionGuard",
    "IdentityResolver",
    "StaticIdentityResolver",
    "EventLocks",
    "MembershipDiff",
    "diff_membership",
    "assign_code",
    "final_round_code",
    "DEFAULT_RULESET",
    "EventSpec",
    "RoundCodes",
    "Ruleset",
    "get_ruleset",
    "load_ruleset",
    "Settings",
    "get_settings",
    "DocumentStore",
    "InMemoryStore",
    "CompetitionDoc",
    "RoundDoc",
    "ResultDoc",
    "GroupDoc",
    "InputSanitizer",
    "RoundsCoreError",
    "AccessDenied",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "NoNextRound",
    "InvalidArgument",
    "InvalidCount",
    "EventUnrecognized",
    "InvalidFormat",
    "InvalidRound",
    "TooManyRounds",
    "CannotRemove",
    "InvalidPosition",
]
