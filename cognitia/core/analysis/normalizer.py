"""Coerce raw model output into a guaranteed-shape AnalysisResult.

Only presence is enforced: the fields in RESULT_DEFAULTS are filled when
absent, everything else is passed through exactly as parsed.
"""

import copy
import json
import logging
from typing import Any, Dict

from ..errors import MalformedResponseError

logger = logging.getLogger(__name__)

RESULT_DEFAULTS: Dict[str, Any] = {
    "data_summary": {
        "detected_entities": [],
        "key_metrics": [],
        "relationships": [],
    },
    "insights": [],
    "anomalies": [],
    "risk_analysis": [],
    "recommendations": [],
    "risk_heatmap": {"title": "Risk Distribution", "data": []},
    "operational_efficiency": {"title": "Operational Efficiency", "metrics": []},
    "geographic_matrix": {"title": "Geographic Opportunity Matrix", "data": []},
}


def normalize(raw: str) -> Dict[str, Any]:
    """Parse model output and backfill missing sections.

    Raises:
        MalformedResponseError: empty text, invalid JSON, or a document
            that is not a JSON object.
    """
    if not raw or not raw.strip():
        raise MalformedResponseError("Model returned empty response")

    try:
        result = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Model output is not valid JSON: {e}")
        raise MalformedResponseError(f"Model returned malformed JSON: {e}") from e

    if not isinstance(result, dict):
        raise MalformedResponseError(
            f"Model returned {type(result).__name__}, expected a JSON object"
        )

    missing = [name for name in RESULT_DEFAULTS if result.get(name) is None]
    for name in missing:
        result[name] = copy.deepcopy(RESULT_DEFAULTS[name])

    if missing:
        logger.debug(f"Backfilled missing result sections: {', '.join(missing)}")
    return result
