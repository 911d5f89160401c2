from .identity import AuthIdentity
from .profile import Profile
from .feature_feedback import FeatureFeedback
from .moderation import (
    CommunityMessage,
    CommunityReport,
    StudyRoom,
    StudyRoomMessage,
    StudyRoomReport,
)
from .partner import Partner, PARTNER_TYPES
from .activity import (
    Task,
    Note,
    FlashcardDeck,
    Flashcard,
    StudyPlan,
    PomodoroSession,
    UserAchievement,
    Subscription,
)
