"""Tier 1: deterministic, hand-weighted migraine risk scoring.

Each rule is evaluated independently. A rule that fires adds its fixed weight
to an unbounded sum and records a RiskFactor; the sum is clamped to [0, 1]
only at the end. No randomness, no model, always available.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from aura.domains.migraine.domain_logic.feature_extractor import FeatureExtractor
from aura.domains.migraine.domain_logic.models import (
    SCORED_TRIGGERS,
    MigraineEvent,
    MigraineFeatureVector,
    MigraineRiskScore,
    PredictionSource,
    RiskFactor,
    RiskLevel,
)

# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

RISK_WEIGHTS: dict[str, float] = {
    # Weather
    "pressure_drop_large": 0.25,      # > 5 hPa drop in 24h
    "pressure_drop_moderate": 0.15,   # 3-5 hPa drop
    "adverse_weather": 0.10,          # WMO code >= 61 (rain, snow, storms)
    # Sleep
    "very_poor_sleep": 0.25,          # < 5 hours
    "poor_sleep": 0.20,               # 5-6 hours
    # Frequency
    "high_recent_frequency": 0.15,    # 3+ in last 7 days
    "recent_migraine": 0.10,          # within last 2 days
    # Stress / autonomic
    "high_stress": 0.15,              # self-reported >= 4
    "low_hrv": 0.12,                  # < 30 ms
    "elevated_rhr": 0.08,             # > 80 bpm
    # Hormonal
    "menstrual_window": 0.15,         # days 0-3 of cycle
    # Medication rebound
    "triptan_rebound": 0.12,          # 3+ uses / 7 days
    "nsaid_rebound": 0.10,            # 4+ uses / 7 days
    # Behavioral
    "dehydration": 0.10,              # hydration <= 2
    "high_caffeine": 0.08,            # > 4 cups
    "low_activity": 0.05,             # < 2000 steps
    # Temporal patterns
    "weekend_effect": 0.05,
    "peak_hour": 0.08,                # hour holds > 15% of history
    "peak_day_of_week": 0.05,         # weekday holds > 20% of history
    # Personal trigger history
    "personal_trigger": 0.10,         # trigger in > 40% of history, top 3
}

STORM_WEATHER_CODE = 61
PEAK_HOUR_THRESHOLD = 0.15
PEAK_DAY_THRESHOLD = 0.20
PERSONAL_TRIGGER_THRESHOLD = 0.40
MAX_PERSONAL_TRIGGERS = 3
MAX_REPORTED_FACTORS = 6

MAX_CONFIDENCE = 0.95
NO_HISTORY_CONFIDENCE = 0.10

FIRST_ENTRY_RECOMMENDATION = (
    "Log your first migraine to start building your personal risk profile."
)
LOW_RISK_RECOMMENDATION = "Your migraine risk is currently low. Keep up your healthy habits!"
MONITOR_RECOMMENDATION = "Monitor your triggers and stay hydrated today."


def compute_confidence(
    history_size: int,
    *,
    has_weather: bool,
    has_health: bool,
    has_check_in: bool,
) -> float:
    """Confidence in a Tier 1 score, driven by how much data backed it.

    Independent of the risk magnitude.
    """
    if history_size <= 0:
        confidence = NO_HISTORY_CONFIDENCE
    elif history_size <= 5:
        confidence = 0.40
    elif history_size <= 15:
        confidence = 0.50
    elif history_size <= 30:
        confidence = 0.60
    else:
        confidence = 0.70

    if has_weather:
        confidence += 0.10
    if has_health:
        confidence += 0.10
    if has_check_in:
        confidence += 0.05

    return min(confidence, MAX_CONFIDENCE)


class _Accumulator:
    """Collects fired rules for one scoring pass."""

    def __init__(self) -> None:
        self.total = 0.0
        self.factors: list[RiskFactor] = []
        self.recommendations: list[str] = []

    def add(
        self,
        weight_key: str,
        name: str,
        icon: str,
        color: str,
        detail: str,
        recommendation: str | None = None,
    ) -> None:
        contribution = RISK_WEIGHTS[weight_key]
        self.total += contribution
        self.factors.append(RiskFactor(
            name=name,
            contribution=contribution,
            icon=icon,
            color=color,
            detail=detail,
        ))
        if recommendation:
            self.recommendations.append(recommendation)


class RuleBasedScorer:
    """Scores a feature vector against the weighted rule table.

    Usage::

        scorer = RuleBasedScorer()
        score = scorer.score(features, history)
        score.top_factors[0].name  # e.g. "Rapid Pressure Drop"
    """

    def __init__(self, extractor: FeatureExtractor | None = None) -> None:
        self._extractor = extractor or FeatureExtractor()

    def score(
        self,
        features: MigraineFeatureVector,
        history: Sequence[MigraineEvent],
        now: datetime | None = None,
    ) -> MigraineRiskScore:
        timestamp = now or datetime.now()

        # No personal baseline yet: do not fabricate a risk.
        if not history:
            return MigraineRiskScore(
                overall_risk=0.0,
                risk_level=RiskLevel.LOW,
                top_factors=[],
                recommendations=[FIRST_ENTRY_RECOMMENDATION],
                confidence=NO_HISTORY_CONFIDENCE,
                prediction_source=PredictionSource.RULE_BASED,
                timestamp=timestamp,
            )

        acc = _Accumulator()
        self._weather_rules(features, acc)
        self._sleep_rules(features, acc)
        self._frequency_rules(features, acc)
        self._autonomic_rules(features, acc)
        self._hormonal_rules(features, acc)
        self._medication_rules(features, acc)
        self._behavioral_rules(features, acc)
        self._temporal_rules(features, history, acc)
        self._personal_trigger_rules(features, acc)

        risk = max(0.0, min(1.0, acc.total))
        # Stable sort: ties keep evaluation order
        factors = sorted(acc.factors, key=lambda f: f.contribution, reverse=True)

        recommendations = acc.recommendations
        if not recommendations:
            recommendations = [
                LOW_RISK_RECOMMENDATION if risk < 0.25 else MONITOR_RECOMMENDATION
            ]

        confidence = compute_confidence(
            len(history),
            has_weather=features.weather_present,
            has_health=features.health_present,
            has_check_in=features.check_in_present,
        )

        return MigraineRiskScore(
            overall_risk=risk,
            risk_level=RiskLevel.from_risk(risk),
            top_factors=factors[:MAX_REPORTED_FACTORS],
            recommendations=recommendations,
            confidence=confidence,
            prediction_source=PredictionSource.RULE_BASED,
            timestamp=timestamp,
        )

    # ------------------------------------------------------------------
    # Rule groups
    # ------------------------------------------------------------------

    @staticmethod
    def _weather_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        pressure_drop = -f.pressure_change_24h  # positive = pressure fell

        if pressure_drop > 5:
            acc.add(
                "pressure_drop_large",
                "Rapid Pressure Drop",
                "arrow.down.to.line",
                "red",
                f"Barometric pressure dropped {pressure_drop:.1f} hPa in 24 hours",
                "A significant barometric pressure drop is detected. Consider preventive "
                "medication if your doctor has prescribed one.",
            )
        elif pressure_drop > 3:
            acc.add(
                "pressure_drop_moderate",
                "Moderate Pressure Drop",
                "arrow.down",
                "orange",
                f"Pressure dropped {pressure_drop:.1f} hPa in 24 hours",
            )

        if f.weather_code >= STORM_WEATHER_CODE:
            acc.add(
                "adverse_weather",
                "Adverse Weather",
                "cloud.rain.fill",
                "blue",
                "Current or forecast weather may be a trigger",
            )

    @staticmethod
    def _sleep_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        sleep = f.sleep_hours_last_night
        if sleep is None:
            return
        if sleep < 5:
            acc.add(
                "very_poor_sleep",
                "Very Poor Sleep",
                "moon.zzz.fill",
                "red",
                f"Only {sleep:.1f} hours of sleep last night",
                "You had very little sleep. Try to rest when possible and stay hydrated.",
            )
        elif sleep < 6:
            acc.add(
                "poor_sleep",
                "Poor Sleep",
                "moon.fill",
                "orange",
                f"{sleep:.1f} hours of sleep last night",
                "Consider getting extra rest today to reduce migraine risk.",
            )

    @staticmethod
    def _frequency_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        if f.migraines_in_last_7_days >= 3:
            acc.add(
                "high_recent_frequency",
                "High Recent Frequency",
                "chart.line.uptrend.xyaxis",
                "red",
                f"{f.migraines_in_last_7_days} migraines in the last 7 days",
                "Your migraine frequency is elevated. Consider contacting your healthcare "
                "provider if this pattern continues.",
            )
        if f.days_since_last_migraine < 2:
            acc.add(
                "recent_migraine",
                "Recent Migraine",
                "clock.arrow.circlepath",
                "orange",
                "Migraine occurred within the last 2 days",
            )

    @staticmethod
    def _autonomic_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        if f.self_reported_stress is not None and f.self_reported_stress >= 4:
            acc.add(
                "high_stress",
                "High Stress",
                "brain.head.profile",
                "orange",
                f"Self-reported stress level: {f.self_reported_stress}/5",
                "Your stress level is high. Try relaxation techniques like deep breathing "
                "or a short walk.",
            )
        if f.hrv_last_night is not None and f.hrv_last_night < 30:
            acc.add(
                "low_hrv",
                "Low Heart Rate Variability",
                "heart.text.square",
                "orange",
                f"HRV: {f.hrv_last_night:.0f} ms (below normal)",
            )
        if f.resting_heart_rate is not None and f.resting_heart_rate > 80:
            acc.add(
                "elevated_rhr",
                "Elevated Resting Heart Rate",
                "heart.fill",
                "orange",
                f"Resting HR: {int(f.resting_heart_rate)} bpm",
            )

    @staticmethod
    def _hormonal_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        days = f.days_since_menstruation
        if days is not None and days <= 3:
            acc.add(
                "menstrual_window",
                "Menstrual Window",
                "drop.fill",
                "pink",
                f"Day {days} of menstrual cycle, a known trigger window",
                "Hormonal changes around menstruation are a common migraine trigger. "
                "Consider preventive strategies.",
            )

    @staticmethod
    def _medication_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        if f.triptan_uses_last_7_days >= 3:
            acc.add(
                "triptan_rebound",
                "Triptan Overuse Risk",
                "pills.fill",
                "red",
                f"Triptans used {f.triptan_uses_last_7_days} times this week (limit: 2-3)",
                "Frequent triptan use can cause medication overuse headaches. "
                "Discuss with your doctor.",
            )
        if f.nsaid_uses_last_7_days >= 4:
            acc.add(
                "nsaid_rebound",
                "NSAID Overuse Risk",
                "pills.circle",
                "orange",
                f"NSAIDs used {f.nsaid_uses_last_7_days} times this week",
            )

    @staticmethod
    def _behavioral_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        if f.self_reported_hydration is not None and f.self_reported_hydration <= 2:
            acc.add(
                "dehydration",
                "Low Hydration",
                "drop.triangle.fill",
                "blue",
                f"Hydration level: {f.self_reported_hydration}/5",
                "Stay hydrated. Drink water regularly throughout the day.",
            )
        if f.self_reported_caffeine is not None and f.self_reported_caffeine > 4:
            acc.add(
                "high_caffeine",
                "High Caffeine",
                "cup.and.saucer.fill",
                "brown",
                f"{f.self_reported_caffeine} cups of caffeine today",
            )
        if f.steps_yesterday is not None and f.steps_yesterday < 2000:
            acc.add(
                "low_activity",
                "Low Activity",
                "figure.walk",
                "gray",
                f"Only {f.steps_yesterday} steps yesterday",
            )

    def _temporal_rules(
        self,
        f: MigraineFeatureVector,
        history: Sequence[MigraineEvent],
        acc: _Accumulator,
    ) -> None:
        if f.is_weekend:
            acc.add(
                "weekend_effect",
                "Weekend Schedule Change",
                "calendar",
                "purple",
                "Weekend schedule changes can trigger migraines",
            )

        peak_hour = self._extractor.hourly_distribution(history).get(f.hour_of_day, 0.0)
        if peak_hour > PEAK_HOUR_THRESHOLD:
            acc.add(
                "peak_hour",
                "Peak Time Window",
                "clock.fill",
                "indigo",
                f"{int(peak_hour * 100)}% of your migraines occur around this hour",
            )

        peak_day = self._extractor.day_of_week_distribution(history).get(f.day_of_week, 0.0)
        if peak_day > PEAK_DAY_THRESHOLD:
            acc.add(
                "peak_day_of_week",
                "High-Risk Day",
                "calendar.badge.exclamationmark",
                "indigo",
                f"{int(peak_day * 100)}% of your migraines occur on this day",
            )

    @staticmethod
    def _personal_trigger_rules(f: MigraineFeatureVector, acc: _Accumulator) -> None:
        frequent = [
            (name, getattr(f, field_name), icon)
            for _, field_name, name, icon in SCORED_TRIGGERS
            if getattr(f, field_name) > PERSONAL_TRIGGER_THRESHOLD
        ]
        frequent.sort(key=lambda t: t[1], reverse=True)

        for name, freq, icon in frequent[:MAX_PERSONAL_TRIGGERS]:
            acc.add(
                "personal_trigger",
                f"{name} Trigger Pattern",
                icon,
                "teal",
                f"Present in {int(freq * 100)}% of your migraines",
            )
