import logging
from typing import Dict, Optional

from casual_companion.user_state import UserState

logger = logging.getLogger(__name__)


class InMemoryUserStateStore:
    """
    In-memory implementation of the UserStateStore protocol.

    States are stored as copies so an orchestrator turn only changes the
    stored state when it saves.
    """

    def __init__(self):
        self._states: Dict[str, UserState] = {}

        logger.info("InMemoryUserStateStore initialized")

    def load(self, user_id: str) -> Optional[UserState]:
        state = self._states.get(user_id)
        return state.model_copy(deep=True) if state else None

    def save(self, state: UserState) -> None:
        self._states[state.user_id] = state.model_copy(deep=True)

    def delete(self, user_id: str) -> bool:
        return self._states.pop(user_id, None) is not None
