"""
Analytics snapshot models.

The snapshot is assembled from several independent upstream metric calls;
any metric whose call failed keeps its zero/empty default.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class AnalyticsRange(str, Enum):
    DAY = 'day'
    WEEK = 'week'
    MONTH = 'month'

    @property
    def upstream_value(self) -> str:
        return {'day': 'daily', 'week': 'weekly', 'month': 'monthly'}[self.value]


class SeriesPoint(BaseModel):
    label: str = ''
    value: float = 0


class OverviewMetrics(BaseModel):
    views: float = 0
    users: float = 0
    images: float = 0
    growth: float = 0


class SeriesSet(BaseModel):
    views: list[SeriesPoint] = Field(default_factory=list)
    registrations: list[SeriesPoint] = Field(default_factory=list)
    generations: list[SeriesPoint] = Field(default_factory=list)


class AnalyticsSnapshot(BaseModel):
    range: AnalyticsRange = AnalyticsRange.DAY
    overview: OverviewMetrics = Field(default_factory=OverviewMetrics)
    series: SeriesSet = Field(default_factory=SeriesSet)
    degraded: list[str] = Field(default_factory=list)
