"""Alarmas devueltas por el evaluador de umbrales externo."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Alarm:
    id: str
    equipment_id: str
    severity: str
    status: str
    metric_type: Optional[str] = None
    monitoring_point: Optional[str] = None
    abnormal_value: Optional[float] = None
    threshold_range: Optional[str] = None
    fault_name: Optional[str] = None
    recommended_action: Optional[str] = None
    triggered_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alarm":
        triggered = data.get("triggeredAt")
        if isinstance(triggered, str) and triggered:
            triggered = datetime.fromisoformat(triggered.replace("Z", "+00:00"))
        value = data.get("abnormalValue")
        return cls(
            id=str(data["id"]),
            equipment_id=str(data["equipmentId"]),
            severity=str(data.get("severity", "medium")),
            status=str(data.get("status", "pending")),
            metric_type=data.get("metricType"),
            monitoring_point=data.get("monitoringPoint"),
            abnormal_value=float(value) if value is not None else None,
            threshold_range=data.get("thresholdRange"),
            fault_name=data.get("faultName"),
            recommended_action=data.get("recommendedAction"),
            triggered_at=triggered if isinstance(triggered, datetime) else None,
        )

    def to_message(self, equipment_code: str) -> dict:
        return {
            "id": self.id,
            "equipmentId": equipment_code,
            "severity": self.severity,
            "metricType": self.metric_type,
            "monitoringPoint": self.monitoring_point,
            "abnormalValue": self.abnormal_value,
            "thresholdRange": self.threshold_range,
            "faultName": self.fault_name,
            "recommendedAction": self.recommended_action,
            "triggeredAt": self.triggered_at.isoformat() if self.triggered_at else None,
            "status": self.status,
        }
