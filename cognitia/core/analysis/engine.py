"""Analysis Engine — orchestrator for one intelligence request.

prompt -> RetryingInvoker -> normalize -> (best-effort) ReportStore

Public API consumed by the /api/analyze route.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..errors import CognitiaError
from ..gateway import RetryingInvoker
from ..reports import ReportStore
from .normalizer import normalize
from .prompts import SYSTEM_INSTRUCTION, build_analysis_prompt

logger = logging.getLogger(__name__)

# Rows accepted from the client (payload size). Independent of the prompt limit.
MAX_SAMPLE_ROWS = 500


@dataclass
class AnalysisRequest:
    dataset: List[Dict[str, Any]]
    query: Optional[str] = None
    context: Optional[str] = None
    total_rows: Optional[int] = None
    sample: List[Dict[str, Any]] = field(init=False)

    def __post_init__(self):
        if len(self.dataset) > MAX_SAMPLE_ROWS:
            logger.info(f"Dataset sample truncated from {len(self.dataset)} to {MAX_SAMPLE_ROWS} rows")
        self.sample = self.dataset[:MAX_SAMPLE_ROWS]
        if self.total_rows is None:
            self.total_rows = len(self.dataset)


def new_report_id() -> str:
    return f"rep_{int(time.time() * 1000)}_{uuid4().hex[:8]}"


class AnalysisEngine:
    """Run an analysis and persist it for signed-in users.

    Public API:
        analyze(request, user_id=None) -> AnalysisResult dict
    """

    def __init__(self, invoker: RetryingInvoker, store: Optional[ReportStore] = None):
        self._invoker = invoker
        self._store = store

    async def analyze(self, request: AnalysisRequest, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Run the full analysis.

        Raises:
            UpstreamError: the reasoning service failed (after retries)
            MalformedResponseError: the reply was empty or not a JSON object
        """
        logger.info(
            f"Starting analysis: rows={len(request.sample)} total_rows={request.total_rows} "
            f"user={user_id or 'anonymous'}"
        )
        prompt = build_analysis_prompt(
            request.sample,
            query=request.query,
            context=request.context,
            total_rows=request.total_rows,
        )

        t0 = time.time()
        raw = await self._invoker.invoke(SYSTEM_INSTRUCTION, prompt)
        result = normalize(raw)
        logger.info(f"Analysis successful in {(time.time() - t0):.1f}s")

        if user_id:
            self._persist_best_effort(user_id, request, result)
        return result

    def _persist_best_effort(self, user_id: str, request: AnalysisRequest, result: Dict[str, Any]) -> Optional[str]:
        """Store the report; failures are logged and swallowed."""
        if self._store is None:
            return None

        report_id = new_report_id()
        try:
            self._store.append(
                report_id=report_id,
                user_id=user_id,
                query=request.query,
                context=request.context,
                result=result,
            )
        except CognitiaError as e:
            logger.error(f"Failed to save report {report_id} for user {user_id}: {e}")
            return None
        return report_id
