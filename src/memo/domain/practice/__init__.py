# Domain Practice Package
from .session import CompletionMetrics, PracticeSession, Progress, SessionState

__all__ = ["PracticeSession", "Progress", "CompletionMetrics", "SessionState"]
