"""
alerts/sku_rules.py

SKU-level alerts for the highest-spend SKUs present in both periods.

Only the :data:`TOP_SKUS_BY_SPEND` SKUs with the largest current spend are
scanned, joined to the previous period on ``sku``. For each matched SKU:

1. Zero conversions with spend > 30        -> danger (waste signal, no further checks).
2. Spend < 10                              -> skipped.
3. ROAS delta >= +30% with ROAS >= 7       -> success (no further checks).
   ROAS delta <= -20% danger, <= -10% warn.
4. Revenue delta <= -25% with previous revenue > 100 -> warn.

At most :data:`MAX_SKU_ALERTS` alerts are returned.
"""

from __future__ import annotations

from alerts.base import AlertInputs, BaseAlertRules, band, fmt_money, fmt_pct, round_delta
from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN, SmartAlert
from app.domain.metrics import SkuMetrics
from kpi.ratios import pct_delta, round2, safe_div

MAX_SKU_ALERTS: int = 5
TOP_SKUS_BY_SPEND: int = 20

ZERO_CONVERSION_MIN_SPEND: float = 30.0
MIN_SPEND: float = 10.0
ROAS_GAIN_DELTA: float = 30.0
ROAS_GAIN_FLOOR: float = 7.0
REVENUE_DROP_DELTA: float = -25.0
REVENUE_DROP_MIN_PREVIOUS: float = 100.0

ROAS_DECLINE_BANDS: list[tuple[float, str]] = [(-20.0, SEVERITY_DANGER), (-10.0, SEVERITY_WARN)]


class SkuAlertRules(BaseAlertRules):
    scope = "sku"

    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        previous_by_sku = {sku.sku: sku for sku in inputs.previous.skus}
        if not previous_by_sku:
            return []

        # sorted() is stable, so equal spend keeps input order.
        top = sorted(inputs.current.skus, key=lambda sku: sku.spend, reverse=True)[:TOP_SKUS_BY_SPEND]

        alerts: list[SmartAlert] = []
        for sku in top:
            previous = previous_by_sku.get(sku.sku)
            if previous is None:
                continue
            alerts.extend(self._evaluate_one(sku, previous))
        return alerts[:MAX_SKU_ALERTS]

    def _evaluate_one(self, sku: SkuMetrics, previous: SkuMetrics) -> list[SmartAlert]:
        if sku.conversions == 0 and sku.spend > ZERO_CONVERSION_MIN_SPEND:
            return [
                self._alert(
                    sku,
                    suffix="zero-conv",
                    severity=SEVERITY_DANGER,
                    title=f"SKU {sku.sku}: spent {fmt_money(sku.spend)} without a single sale",
                    description=f"{sku.clicks:,.0f} clicks but no conversion in the period.",
                    metric="conversions",
                    current_value=0.0,
                    previous_value=previous.conversions,
                    delta_pct=-100.0 if previous.conversions > 0 else 0.0,
                    recommendation="Pause ads for this SKU or review its product page",
                )
            ]

        if sku.spend < MIN_SPEND:
            return []

        alerts: list[SmartAlert] = []

        cur_roas = safe_div(sku.revenue, sku.spend)
        prev_roas = safe_div(previous.revenue, previous.spend)
        roas_delta = pct_delta(cur_roas, prev_roas)

        if roas_delta >= ROAS_GAIN_DELTA and cur_roas >= ROAS_GAIN_FLOOR:
            alerts.append(
                self._alert(
                    sku,
                    suffix="roas-up",
                    severity=SEVERITY_SUCCESS,
                    title=f"SKU {sku.sku}: ROAS up {fmt_pct(roas_delta)}",
                    description=f"Current ROAS: {cur_roas:.2f} vs previous: {prev_roas:.2f}.",
                    metric="roas",
                    current_value=round2(cur_roas),
                    previous_value=round2(prev_roas),
                    delta_pct=round_delta(roas_delta),
                    recommendation="Consider raising the budget for this SKU",
                )
            )
            return alerts

        severity = band(roas_delta, ROAS_DECLINE_BANDS)
        if severity is not None:
            alerts.append(
                self._alert(
                    sku,
                    suffix="roas-drop" if severity == SEVERITY_DANGER else "roas-warn",
                    severity=severity,
                    title=f"SKU {sku.sku}: ROAS fell {fmt_pct(roas_delta)}",
                    description=f"Current ROAS: {cur_roas:.2f} vs previous: {prev_roas:.2f}.",
                    metric="roas",
                    current_value=round2(cur_roas),
                    previous_value=round2(prev_roas),
                    delta_pct=round_delta(roas_delta),
                    recommendation="Check price competitiveness and ad creative for this SKU",
                )
            )

        revenue_delta = pct_delta(sku.revenue, previous.revenue)
        if revenue_delta <= REVENUE_DROP_DELTA and previous.revenue > REVENUE_DROP_MIN_PREVIOUS:
            alerts.append(
                self._alert(
                    sku,
                    suffix="rev-drop",
                    severity=SEVERITY_WARN,
                    title=f"SKU {sku.sku}: revenue fell {fmt_pct(revenue_delta)}",
                    description=(
                        f"Current revenue: {fmt_money(sku.revenue)} vs previous: {fmt_money(previous.revenue)}."
                    ),
                    metric="revenue",
                    current_value=round2(sku.revenue),
                    previous_value=round2(previous.revenue),
                    delta_pct=round_delta(revenue_delta),
                )
            )

        return alerts

    @staticmethod
    def _alert(sku: SkuMetrics, *, suffix: str, **fields) -> SmartAlert:
        return SmartAlert(
            id=f"sku-{sku.sku}-{suffix}",
            category="sku",
            entity_name=sku.name,
            entity_id=sku.sku,
            **fields,
        )
