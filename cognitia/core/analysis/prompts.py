"""Prompt templates for the Intelligence Engine.

Two pieces:
1. SYSTEM_INSTRUCTION - fixed role, reasoning rules and strict JSON schema
2. build_analysis_prompt - per-request dataset sample, intent and format rules
"""

import json
from typing import Any, Dict, List, Optional

# Rows embedded in the prompt text (token budget).
PROMPT_ROW_LIMIT = 100

DEFAULT_CONTEXT = "General Business Data"
DEFAULT_QUERY = "Analyze this data for executive insights"

SYSTEM_INSTRUCTION = """
SYSTEM ROLE:
You are an AI Data Intelligence Engine that replaces spreadsheets, dashboards and BI tools.
You perform structured reasoning over tabular data and produce autonomous insights, forecasts,
risk analysis and decision intelligence. You behave like a persistent enterprise intelligence
system, not a chatbot.

OBJECTIVE:
Given a structured dataset, you must:
1. Understand the schema automatically
2. Detect relationships
3. Identify key metrics
4. Generate contextual insights
5. Detect anomalies
6. Forecast trends
7. Identify risks
8. Suggest decisions
9. Explain every conclusion with evidence
10. Provide a confidence score

REASONING RULES:
- Always infer KPIs from the data.
- If time-series data exists, generate a forecast.
- If numeric variance exceeds 2 standard deviations, flag an anomaly.
- Detect correlations and trend direction.
- Always explain WHY.
- Never answer "insufficient data" unless analysis is truly impossible.
- Be analytical, not conversational. Assume enterprise-level decision making.

OUTPUT FORMAT (STRICT JSON):
{
  "data_summary": {
    "detected_entities": ["string"],
    "key_metrics": [{"name": "string", "value": "string", "trend": "up/down/stable"}],
    "relationships": ["string"]
  },
  "visualizations": [
    {
      "type": "pie | bar | line | area",
      "title": "string",
      "data": [{"name": "string", "value": "number"}],
      "description": "string"
    }
  ],
  "insights": [
    {"title": "string", "description": "string", "data_evidence": "string", "impact_level": "Low/Medium/High"}
  ],
  "anomalies": [
    {"type": "string", "location": "string", "reasoning": "string", "severity": "Low/Medium/High"}
  ],
  "forecast": {
    "time_horizon": "string",
    "predicted_trend": "string",
    "confidence_level": "string",
    "projection_data": [{"period": "string", "value": "number"}]
  },
  "strategic_growth": {
    "title": "string",
    "data": [{"label": "string", "current": "number", "projected": "number"}]
  },
  "market_expansion": {
    "title": "string",
    "data": [{"segment": "string", "opportunity_score": "number", "risk_factor": "number"}]
  },
  "geographic_matrix": {
    "title": "string",
    "data": [{"city": "string", "score": "number", "risk": "number"}]
  },
  "risk_heatmap": {
    "title": "string",
    "data": [{"category": "string", "risk_score": "number", "impact": "number"}]
  },
  "operational_efficiency": {
    "title": "string",
    "metrics": [{"label": "string", "score": "number"}]
  },
  "risk_analysis": [
    {"risk_type": "string", "probability": "string", "business_impact": "string", "evidence": "string"}
  ],
  "recommendations": [
    {"action": "string", "justification": "string", "expected_outcome": "string", "confidence_score": "number (0-1)"}
  ]
}
"""

_FORMAT_REQUIREMENTS = """\
- For "geographic_matrix", provide a complete "Geographic Opportunity Matrix" covering ALL cities or regions identified in the dataset. Do not stop at three; include every relevant location.
- For "forecast.projection_data", provide 6-8 chronologically ordered data points representing a logical progression.
- For "strategic_growth", compare current vs projected performance across key segments.
- For "risk_heatmap", provide data points that can be plotted as risk vs impact.
- For "operational_efficiency", provide scores from 0 to 100 for each operational area.
- Ensure all JSON is valid and strictly follows the schema."""


def format_rows(dataset: List[Dict[str, Any]], limit: int = PROMPT_ROW_LIMIT) -> str:
    """Render the first ``limit`` rows as one JSON object per line."""
    return "\n".join(json.dumps(row, ensure_ascii=False, default=str) for row in dataset[:limit])


def build_analysis_prompt(
    dataset: List[Dict[str, Any]],
    query: Optional[str] = None,
    context: Optional[str] = None,
    total_rows: Optional[int] = None,
) -> str:
    """Build the per-request analysis prompt.

    Args:
        dataset: Row records supplied by the client
        query: User intent; DEFAULT_QUERY when blank
        context: Dataset description; DEFAULT_CONTEXT when blank
        total_rows: Size of the client's full dataset, if known
    """
    shown = min(len(dataset), PROMPT_ROW_LIMIT)
    size_line = ""
    if total_rows:
        size_line = f"\nTotal rows in source dataset: {total_rows} (showing {shown})"

    return f"""
Dataset Context: {context or DEFAULT_CONTEXT}
User Intent: {query or DEFAULT_QUERY}
{size_line}
DATASET (First {PROMPT_ROW_LIMIT} rows):
{format_rows(dataset)}

Perform full intelligence analysis and return the results in the specified JSON format.
{_FORMAT_REQUIREMENTS}
"""
