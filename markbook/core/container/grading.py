from __future__ import annotations

from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Object, Provider, Singleton

from markbook.grading.aggregator import GradeAggregator
from markbook.grading.approval import ApprovalGate
from markbook.grading.audit import AuditSink, StorageAuditSink
from markbook.grading.committer import ImportCommitter
from markbook.grading.detector import OverrideDetector
from markbook.grading.pipeline import ImportPipeline
from markbook.grading.validator import ImportValidator

from ..config.grading import GradingSettings
from ..provider import TimestampProvider


class GradingContainer(DeclarativeContainer):
    config: Configuration = Configuration()
    utcnow: Provider[TimestampProvider] = Object()

    settings: Provider[GradingSettings] = Singleton(GradingSettings, config)

    validator: Provider[ImportValidator] = Singleton(ImportValidator, settings=settings)
    aggregator: Provider[GradeAggregator] = Singleton(GradeAggregator, settings=settings)
    detector: Provider[OverrideDetector] = Singleton(OverrideDetector)
    audit_sink: Provider[AuditSink] = Singleton(StorageAuditSink)
    approval: Provider[ApprovalGate] = Singleton(
        ApprovalGate, aggregator=aggregator, audit_sink=audit_sink, utcnow=utcnow
    )
    committer: Provider[ImportCommitter] = Singleton(ImportCommitter, detector=detector, aggregator=aggregator)
    pipeline: Provider[ImportPipeline] = Singleton(
        ImportPipeline, validator=validator, committer=committer, settings=settings
    )
