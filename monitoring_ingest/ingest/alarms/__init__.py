"""Evaluación de alarmas (contrato externo)."""

from .evaluator import (
    AlarmEvaluator,
    HttpAlarmEvaluator,
    NullAlarmEvaluator,
    build_alarm_evaluator,
)

__all__ = [
    "AlarmEvaluator",
    "HttpAlarmEvaluator",
    "NullAlarmEvaluator",
    "build_alarm_evaluator",
]
