"""
Salon Analytics Service

Analytics aggregation and forecasting over salon appointment records.
"""

__version__ = "1.0.0"
