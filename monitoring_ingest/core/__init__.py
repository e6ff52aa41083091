"""Core module - Modelos de dominio del pipeline de ingesta.

Estructura:
- domain/  → Lecturas, monitoring points, alarmas, errores y resultados de lote
"""
