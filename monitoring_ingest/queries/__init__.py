"""Consultas de lectura sobre time_series_data."""

from .monitoring_data import MonitoringDataQueries

__all__ = ["MonitoringDataQueries"]
