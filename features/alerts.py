"""
features/alerts.py — Out-of-normal vital flags
===============================================
Informational flags attached to a finished scan so the caller can
suggest seeking care.  They are NOT diagnoses and the engine takes no
action on them.
"""

from config import ALERT_BRADYCARDIA_BPM, ALERT_LOW_SPO2_PCT, ALERT_TACHYCARDIA_BPM
from engine.results import HeartRateEstimate, OxygenationEstimate


def vital_alerts(
    heart_rate: HeartRateEstimate | None,
    oxygenation: OxygenationEstimate | None = None,
) -> list[str]:
    alerts = []
    if heart_rate is not None:
        if heart_rate.bpm > ALERT_TACHYCARDIA_BPM:
            alerts.append("tachycardia")
        elif heart_rate.bpm < ALERT_BRADYCARDIA_BPM:
            alerts.append("bradycardia")
    if oxygenation is not None and oxygenation.percentage < ALERT_LOW_SPO2_PCT:
        alerts.append("low_spo2")
    return alerts
