"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/models/__init__.py
Version:        1.0.0
Description:    Package initializer for core data models. Exports Report,
                Chart, FilterExpression and catalog entities for easy access.
------------------------------------------------------------------------------
"""

from .filters import FieldType, FilterLogic, FilterCondition, FilterExpression
from .catalog import CatalogOption, Metric, CatalogMetadata
from .reporting import (
    ChartType, Visibility, LayoutRect, ChartTarget, ChartComparison,
    DateRangeSpec, AutoRefreshPolicy, Chart, ChartLayoutEntry, Report,
)
