"""LogProgressAdapter — reports session state changes via logging."""

import logging
from typing import Optional

from ports.progress import ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    def report(
        self,
        session_id: str,
        state: str,
        detail: Optional[str] = None,
    ) -> None:
        msg = f"[{session_id}] {state}"
        if detail:
            msg += f" — {detail}"
        if state == "failed":
            logger.error(msg)
        else:
            logger.info(msg)
