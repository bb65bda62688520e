from typing import Any, Dict, Iterable, Optional

from stress_core.models import PredictionResult, ReadingWithPredictions, StressLevel

HIGH_HEART_RATE = 100
HIGH_TEMPERATURE = 37.5
MEDIUM_HEART_RATE = 80
MEDIUM_TEMPERATURE = 37.0

HIGH_CONFIDENCE = 0.92
MEDIUM_CONFIDENCE = 0.88
LOW_CONFIDENCE = 0.85


def classify_stress(heart_rate: int, temperature: float) -> PredictionResult:
    """
    Derives a stress label from a single sensor reading.

    The bands are checked from the most severe down and the first match wins, so a
    reading that satisfies both the high and the medium band is always "high".
    Each band is an OR of the two signals with strict comparisons: one signal over
    its threshold is enough, a value equal to the threshold is not.

    Args:
        heart_rate: Heart rate in BPM.
        temperature: Skin temperature in degrees Celsius.

    Returns:
        A PredictionResult with the label and the fixed confidence of its band.
        GSR is accepted and stored by the ingestion path but plays no part here.
    """
    if heart_rate > HIGH_HEART_RATE or temperature > HIGH_TEMPERATURE:
        return PredictionResult(stress_level=StressLevel.HIGH, confidence=HIGH_CONFIDENCE)

    if heart_rate > MEDIUM_HEART_RATE or temperature > MEDIUM_TEMPERATURE:
        return PredictionResult(stress_level=StressLevel.MEDIUM, confidence=MEDIUM_CONFIDENCE)

    return PredictionResult(stress_level=StressLevel.LOW, confidence=LOW_CONFIDENCE)


def summarize_readings(readings: Iterable[ReadingWithPredictions]) -> Dict[str, Any]:
    """
    Aggregates a window of readings for the dashboard's history panel.

    Readings are expected newest first, as returned by the store. A reading is
    counted under the label of its newest prediction, or under "unscored" when
    the best-effort prediction write never landed.
    """
    readings = list(readings)

    counts = {level.value: 0 for level in StressLevel}
    counts["unscored"] = 0
    for reading in readings:
        label = _latest_label(reading)
        counts[label or "unscored"] += 1

    heart_rates = [r.heart_rate for r in readings]
    temperatures = [r.temperature for r in readings]

    return {
        "total_samples": len(readings),
        "counts": counts,
        "avg_heart_rate": round(sum(heart_rates) / len(heart_rates), 1) if heart_rates else None,
        "min_heart_rate": min(heart_rates) if heart_rates else None,
        "max_heart_rate": max(heart_rates) if heart_rates else None,
        "avg_temperature": round(sum(temperatures) / len(temperatures), 2) if temperatures else None,
        "latest_stress_level": _latest_label(readings[0]) if readings else None,
    }


def _latest_label(reading: ReadingWithPredictions) -> Optional[str]:
    if not reading.stress_predictions:
        return None
    return reading.stress_predictions[0].stress_level.value
