from antiad_bot.services.moderation.engine import ModerationEngine
from antiad_bot.services.moderation.keyword_filter import KeywordFilter
from antiad_bot.services.moderation.link_resolver import LinkResolver
from antiad_bot.services.moderation.photo_judge import PhotoJudge
from antiad_bot.services.moderation.pipeline import ScanPipeline
from antiad_bot.services.moderation.profile_auditor import ProfileAuditor
from antiad_bot.services.moderation.trust import TrustStateMachine
from antiad_bot.services.moderation.types import (
    Action,
    Decision,
    GroupConfig,
    StateUpdate,
    UserState,
    Verdict,
)

__all__ = [
    "Action",
    "Decision",
    "GroupConfig",
    "KeywordFilter",
    "LinkResolver",
    "ModerationEngine",
    "PhotoJudge",
    "ProfileAuditor",
    "ScanPipeline",
    "StateUpdate",
    "TrustStateMachine",
    "UserState",
    "Verdict",
]
