from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from google import genai

from core.filters import ALL, DashboardFilters
from core.metrics_overview import DashboardStats
from core.projections import top_departments
from core.settings import Settings, load_settings

__all__ = ["build_insight_prompt", "generate_insights", "get_genai_client"]

_LOGGER = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "AI insights are not configured. Set GEMINI_API_KEY to enable them."
EMPTY_RESPONSE_MESSAGE = "Unable to analyze the data right now."
ERROR_MESSAGE = "Could not reach the AI service. Please try again."


def get_genai_client(settings: Settings) -> Optional[genai.Client]:
    if not settings.gemini_api_key:
        return None
    return genai.Client(api_key=settings.gemini_api_key)


def build_insight_prompt(
    stats: DashboardStats,
    department_points: List[Dict[str, Any]],
    filters: DashboardFilters,
) -> str:
    top = top_departments(department_points, 3)
    dept_lines = "\n".join(f"- {p['name']}: {p['value']:,.0f} sheets" for p in top) or "- (no data)"
    return f"""You are an environmental data analyst for an organization.
Analyze the following paper-usage statistics and summarize them in plain, easy-to-read language.

Context:
- Current filter: department {filters.department or ALL}, year {filters.year or ALL}

Key statistics:
- Total paper used: {stats.total_sheets_used:,.0f} sheets
- Print requests: {stats.total_requests:,} jobs
- Average per request: {stats.average_sheets_per_request} sheets
- Most active department: {stats.most_active_department}
- Sheets saved: {stats.sheets_saved:,.0f} sheets

Environmental impact:
- Trees consumed: {stats.trees_consumed:.2f} trees
- CO2 emitted: {stats.co2_emitted:.2f} kg

Usage by department (top 3):
{dept_lines}

Output requirements:
1. **Overview:** a short summary of the current situation.
2. **Key findings:** 2-3 points (e.g. unusually heavy departments, how savings are trending).
3. **Action items:** 2 data-driven suggestions to reduce paper use or improve efficiency.

Tone: formal but friendly, encouraging eco-friendly habits.
Do not use large Markdown headings (h1); use bold text or bullet points only."""


def generate_insights(
    stats: DashboardStats,
    department_points: List[Dict[str, Any]],
    filters: DashboardFilters,
    *,
    settings: Optional[Settings] = None,
    client: Optional[Any] = None,
) -> str:
    """One-shot summary from Gemini. Always returns text; failures map to fixed messages."""
    settings = settings or load_settings()
    if client is None and not settings.gemini_api_key:
        return MISSING_KEY_MESSAGE

    prompt = build_insight_prompt(stats, department_points, filters)
    try:
        client = client or get_genai_client(settings)
        resp = client.models.generate_content(model=settings.gemini_model, contents=prompt)
        text = (getattr(resp, "text", None) or "").strip()
    except Exception as exc:
        _LOGGER.warning("AI insight call failed: %s", exc)
        return ERROR_MESSAGE
    return text or EMPTY_RESPONSE_MESSAGE
