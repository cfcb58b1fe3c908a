"""
Threshold alerts for the diesel plant.

Alerts are advisory: they are recomputed from scratch on every tick and
never stop the simulation.
"""

DEFAULT_THRESHOLDS = {
    "critical_temperature": 95.0,   # °C, alert above
    "min_efficiency": 5.0,          # %, alert below
    "min_maintenance": 30.0,        # %, alert below
    "max_nox": 80.0,                # alert above
}

ALERT_MESSAGES = {
    "critical_temperature": "Engine temperature critical!",
    "min_efficiency": "Low efficiency warning",
    "min_maintenance": "Maintenance required",
    "max_nox": "NOx emissions exceeding limits",
}


class AlertEvaluator:
    """Stateless threshold checks over one tick's values."""

    def __init__(self, thresholds: dict | None = None):
        t = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.critical_temperature = t["critical_temperature"]
        self.min_efficiency = t["min_efficiency"]
        self.min_maintenance = t["min_maintenance"]
        self.max_nox = t["max_nox"]

    def evaluate(
        self,
        temperature: float,
        efficiency: float,
        maintenance: float,
        nox: float,
    ) -> list[str]:
        """Return the messages of every threshold currently violated."""
        alerts = []
        if temperature > self.critical_temperature:
            alerts.append(ALERT_MESSAGES["critical_temperature"])
        if efficiency < self.min_efficiency:
            alerts.append(ALERT_MESSAGES["min_efficiency"])
        if maintenance < self.min_maintenance:
            alerts.append(ALERT_MESSAGES["min_maintenance"])
        if nox > self.max_nox:
            alerts.append(ALERT_MESSAGES["max_nox"])
        return alerts

    def get_state(self) -> dict:
        return {
            "critical_temperature": self.critical_temperature,
            "min_efficiency": self.min_efficiency,
            "min_maintenance": self.min_maintenance,
            "max_nox": self.max_nox,
        }
