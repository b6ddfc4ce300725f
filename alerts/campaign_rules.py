"""
alerts/campaign_rules.py

Campaign-level alerts for campaigns present in both periods.

Campaigns are joined on ``campaign_id``. A campaign that exists in only one
period is skipped. For each matched campaign, in input order:

1. Zero conversions with spend > 50           -> danger (no further checks).
2. Spend < 10                                 -> skipped.
3. ROAS delta <= -30% danger, <= -15% warn.
4. CPA delta  >= +30% danger, >= +15% warn (current CPA must be > 0).
5. Performance Max / Shopping with 0 < ROAS < 3 and spend > 20 -> warn.

At most :data:`MAX_CAMPAIGN_ALERTS` alerts are returned.
"""

from __future__ import annotations

from alerts.base import AlertInputs, BaseAlertRules, band, band_at_least, fmt_money, fmt_pct, round_delta
from alerts.types import SEVERITY_DANGER, SEVERITY_WARN, SmartAlert
from app.domain.metrics import CampaignMetrics
from kpi.ratios import pct_delta, round2, safe_div

MAX_CAMPAIGN_ALERTS: int = 5

ZERO_CONVERSION_MIN_SPEND: float = 50.0
MIN_SPEND: float = 10.0
LOW_ROAS_CEILING: float = 3.0
LOW_ROAS_MIN_SPEND: float = 20.0
LOW_ROAS_CHANNELS: frozenset[str] = frozenset({"PERFORMANCE_MAX", "SHOPPING"})

ROAS_DECLINE_BANDS: list[tuple[float, str]] = [(-30.0, SEVERITY_DANGER), (-15.0, SEVERITY_WARN)]
CPA_SPIKE_BANDS: list[tuple[float, str]] = [(30.0, SEVERITY_DANGER), (15.0, SEVERITY_WARN)]


class CampaignAlertRules(BaseAlertRules):
    scope = "campaign"

    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        previous_by_id = {campaign.campaign_id: campaign for campaign in inputs.previous.campaigns}
        if not previous_by_id:
            return []

        alerts: list[SmartAlert] = []
        for campaign in inputs.current.campaigns:
            previous = previous_by_id.get(campaign.campaign_id)
            if previous is None:
                continue
            alerts.extend(self._evaluate_one(campaign, previous))
        return alerts[:MAX_CAMPAIGN_ALERTS]

    def _evaluate_one(self, campaign: CampaignMetrics, previous: CampaignMetrics) -> list[SmartAlert]:
        if campaign.conversions == 0 and campaign.spend > ZERO_CONVERSION_MIN_SPEND:
            return [
                self._alert(
                    campaign,
                    suffix="zero-conv",
                    severity=SEVERITY_DANGER,
                    title=f"Campaign '{campaign.name}' spent {fmt_money(campaign.spend)} without conversions",
                    description=(
                        f"{campaign.impressions:,.0f} impressions and {campaign.clicks:,.0f} clicks "
                        "but no conversion."
                    ),
                    metric="conversions",
                    current_value=0.0,
                    previous_value=previous.conversions,
                    delta_pct=-100.0 if previous.conversions > 0 else 0.0,
                    recommendation="Pause this campaign and review its targeting",
                )
            ]

        if campaign.spend < MIN_SPEND:
            return []

        alerts: list[SmartAlert] = []

        cur_roas = safe_div(campaign.revenue, campaign.spend)
        prev_roas = safe_div(previous.revenue, previous.spend)
        roas_delta = pct_delta(cur_roas, prev_roas)
        roas_severity = band(roas_delta, ROAS_DECLINE_BANDS)
        if roas_severity is not None:
            alerts.append(
                self._alert(
                    campaign,
                    suffix="roas-drop" if roas_severity == SEVERITY_DANGER else "roas-warn",
                    severity=roas_severity,
                    title=f"Campaign '{campaign.name}': ROAS fell {fmt_pct(roas_delta)}",
                    description=f"Current ROAS: {cur_roas:.2f} vs previous: {prev_roas:.2f}.",
                    metric="roas",
                    current_value=round2(cur_roas),
                    previous_value=round2(prev_roas),
                    delta_pct=round_delta(roas_delta),
                    recommendation="Review search terms, audiences and bids for this campaign",
                )
            )

        cur_cpa = safe_div(campaign.spend, campaign.conversions)
        prev_cpa = safe_div(previous.spend, previous.conversions)
        cpa_delta = pct_delta(cur_cpa, prev_cpa)
        cpa_severity = band_at_least(cpa_delta, CPA_SPIKE_BANDS) if cur_cpa > 0 else None
        if cpa_severity is not None:
            alerts.append(
                self._alert(
                    campaign,
                    suffix="cpa-spike" if cpa_severity == SEVERITY_DANGER else "cpa-warn",
                    severity=cpa_severity,
                    title=f"Campaign '{campaign.name}': CPA up {fmt_pct(cpa_delta)}",
                    description=f"Current CPA: {fmt_money(cur_cpa)} vs previous: {fmt_money(prev_cpa)}.",
                    metric="cpa",
                    current_value=round2(cur_cpa),
                    previous_value=round2(prev_cpa),
                    delta_pct=round_delta(cpa_delta),
                    recommendation="Add negative keywords or narrow the audience",
                )
            )

        if (
            campaign.channel_type.upper() in LOW_ROAS_CHANNELS
            and 0 < cur_roas < LOW_ROAS_CEILING
            and campaign.spend > LOW_ROAS_MIN_SPEND
        ):
            alerts.append(
                self._alert(
                    campaign,
                    suffix="low-roas",
                    severity=SEVERITY_WARN,
                    title=f"Campaign '{campaign.name}' ({campaign.channel_type}): ROAS only {cur_roas:.1f}",
                    description=f"Spend of {fmt_money(campaign.spend)} returning {fmt_money(campaign.revenue)}.",
                    metric="roas",
                    current_value=round2(cur_roas),
                    previous_value=round2(prev_roas),
                    delta_pct=round_delta(roas_delta),
                    recommendation="Review the product feed and target ROAS setting",
                )
            )

        return alerts

    @staticmethod
    def _alert(campaign: CampaignMetrics, *, suffix: str, **fields) -> SmartAlert:
        return SmartAlert(
            id=f"camp-{campaign.campaign_id}-{suffix}",
            category="campaign",
            entity_name=campaign.name,
            entity_id=campaign.campaign_id,
            **fields,
        )
