"""Practice preferences held in memory, seeded from the application config."""

from memo.application.config import AppConfig
from memo.domain.interfaces import SettingsProvider
from memo.domain.models import PracticeDirection


class PracticeSettings(SettingsProvider):
    """Mutable practice defaults. The session count never drops below 1."""

    def __init__(
        self,
        session_count: int = 10,
        random_order: bool = True,
        direction: PracticeDirection | None = PracticeDirection.FRONT_TO_BACK,
    ):
        self._session_count = 1
        self._random_order = random_order
        self._direction = PracticeDirection.FRONT_TO_BACK
        self.set_default_session_count(session_count)
        self.set_default_direction(direction)

    @classmethod
    def from_config(cls, config: AppConfig) -> "PracticeSettings":
        return cls(
            session_count=config.default_session_count,
            random_order=config.default_random_order,
            direction=config.default_direction,
        )

    def default_session_count(self) -> int:
        return self._session_count

    def default_random_order(self) -> bool:
        return self._random_order

    def default_direction(self) -> PracticeDirection:
        return self._direction

    def set_default_session_count(self, count: int) -> None:
        self._session_count = max(1, count)

    def set_default_random_order(self, random_order: bool) -> None:
        self._random_order = random_order

    def set_default_direction(self, direction: PracticeDirection | None) -> None:
        self._direction = direction or PracticeDirection.FRONT_TO_BACK
