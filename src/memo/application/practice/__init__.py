# Application Practice Package
from .presenter import PracticePresenter
from .session_service import PracticeSessionService
from .settings import PracticeSettings

__all__ = ["PracticePresenter", "PracticeSessionService", "PracticeSettings"]
