"""
Data ingestion modules for AgriLink
"""

from .sensor_ingestion import IngestionResult, SensorIngestionService

__all__ = [
    'IngestionResult',
    'SensorIngestionService'
]
