"""Structured prompt builder for intelligence narratives."""

import json
from typing import Any, Dict, List

from intelligence.types import Insight, IntelligenceResult
from llm_synthesis.schema import NarrativeOutput

_SCHEMA_JSON = json.dumps(NarrativeOutput.model_json_schema(), indent=2)

_EXAMPLE_OUTPUT = json.dumps(
    {
        "headline": "ROAS fell 36% while spend held flat; two SKUs burn budget without sales.",
        "summary": "Revenue dropped against an unchanged budget, so efficiency is the constraint, not reach.",
        "key_points": [
            "Account ROAS moved from 7.40 to 4.76",
            "SKU 123 spent 93.33 with zero conversions",
            "Pacing projects revenue 18% below target",
        ],
        "priority_action": "Pause the zero-conversion SKUs and move their budget to escalate-status SKUs.",
        "tone": "critical",
        "confidence_score": 0.8,
    },
    indent=2,
)

_SYSTEM_INSTRUCTIONS = """\
You are a performance-marketing analyst writing for an e-commerce manager.

STRICT RULES:
- Do NOT compute, calculate, or derive any new numbers.
- Use ONLY the data provided below. Do not infer beyond what is given.
- Return strictly valid JSON matching the schema defined below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
- Each key point must be distinct and must not repeat the headline.
"""

_SECTION_TEMPLATE = """\
## {title}
```json
{data}
```
"""

_MAX_PROMPT_INSIGHTS = 6


class NarrativePromptBuilder:
    """Builds a deterministic prompt from an IntelligenceResult.

    Only the fields a reader needs are included (health, top priority,
    leading insights, quick wins, mode, bottleneck and pacing) so the
    prompt stays small and the model cannot latch onto raw rows.
    """

    def build_prompt(self, result: IntelligenceResult) -> str:
        sections = self._format_data_sections(
            health=self._health(result),
            top_priority=result.top_priority.to_dict() if result.top_priority else {},
            insights=[self._insight(insight) for insight in result.insights[:_MAX_PROMPT_INSIGHTS]],
            quick_wins=[insight.title for insight in result.quick_wins],
            pacing=[
                {
                    "metric": projection.label,
                    "target": projection.target,
                    "projected": projection.projected_end_of_month,
                    "scenario": projection.scenario,
                }
                for projection in result.pacing
            ],
        )

        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"# PROVIDED DATA\n\n{sections}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Your response MUST conform to this JSON schema:\n\n"
            f"```json\n{_SCHEMA_JSON}\n```\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_EXAMPLE_OUTPUT}\n```\n\n"
            f"# TASK\n\n"
            f"Summarise the provided analysis into a single JSON object "
            f"matching the schema above. Do not compute. Use only provided data."
        )

    @staticmethod
    def _health(result: IntelligenceResult) -> Dict[str, Any]:
        health: Dict[str, Any] = {"health_score": result.health_score}
        if result.mode is not None:
            health["strategic_mode"] = result.mode.mode
            health["mode_signals"] = list(result.mode.signals)
        if result.bottleneck is not None:
            health["bottleneck"] = result.bottleneck.constraint
            health["unlock_action"] = result.bottleneck.unlock_action
        if result.trend is not None:
            health["revenue_trend"] = result.trend.classification
        return health

    @staticmethod
    def _insight(insight: Insight) -> Dict[str, Any]:
        actions: List[str] = [rec.action for rec in insight.recommendations]
        return {
            "severity": insight.severity,
            "title": insight.title,
            "description": insight.description,
            "net_impact": insight.financial_impact.net_impact,
            "actions": actions,
        }

    def _format_data_sections(self, **data: Any) -> str:
        parts = []
        for key, value in data.items():
            title = key.replace("_", " ").title()
            body = json.dumps(value, indent=2, default=str)
            parts.append(_SECTION_TEMPLATE.format(title=title, data=body))
        return "\n".join(parts)
