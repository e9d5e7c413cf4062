"""Interview state persistence, one JSON file per session id."""

from pathlib import Path

import structlog
from pydantic import ValidationError

from memory.storage import PersistenceError, read_json, write_json_atomic

from .schema import InterviewState

logger = structlog.get_logger()


class InterviewStateStorage:
    """Saves and restores InterviewState under `<dir>/<id>.json`."""

    def __init__(self, state_dir: str | Path = "~/.persona/interviews"):
        self.state_dir = Path(state_dir).expanduser()

    def _path(self, interview_id: str) -> Path:
        return self.state_dir / f"{interview_id}.json"

    def save(self, state: InterviewState) -> Path:
        """Raises PersistenceError when the write fails."""
        return write_json_atomic(self._path(state.id), state)

    def load(self, interview_id: str) -> InterviewState | None:
        data = read_json(self._path(interview_id))
        if data is None:
            return None
        try:
            return InterviewState.model_validate(data)
        except ValidationError as e:
            logger.warning("interview_state_invalid", interview_id=interview_id, error=str(e))
            return None

    def latest(self) -> InterviewState | None:
        """Most recently written session, if any."""
        if not self.state_dir.exists():
            return None
        files = sorted(
            self.state_dir.glob("*.json"), key=lambda p: p.stat().st_mtime, reverse=True
        )
        for path in files:
            state = self.load(path.stem)
            if state is not None:
                return state
        return None

    def clear(self, interview_id: str) -> None:
        try:
            self._path(interview_id).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to remove interview state {interview_id}: {e}") from e
