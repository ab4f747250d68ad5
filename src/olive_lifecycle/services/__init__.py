"""Application services for the Olive Lifecycle Platform."""

from .store import RecordStore, InMemoryRecordStore, create_record_store
from .analytics import (
    AnalyticsService,
    DateRange,
    TaskMetrics,
    FieldMetrics,
    CostAnalysis,
    CompletionRates,
    TaskStatusDistribution,
)
from .calendar import CalendarService, CalendarEvent, CalendarFilters
from .fields import FieldAccessService
from .auth import AuthService, SessionStore
from .settings import PreferenceStore
from .export import ExportManager, ExportFormat, ExportData

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "create_record_store",
    "AnalyticsService",
    "DateRange",
    "TaskMetrics",
    "FieldMetrics",
    "CostAnalysis",
    "CompletionRates",
    "TaskStatusDistribution",
    "CalendarService",
    "CalendarEvent",
    "CalendarFilters",
    "FieldAccessService",
    "AuthService",
    "SessionStore",
    "PreferenceStore",
    "ExportManager",
    "ExportFormat",
    "ExportData",
]
