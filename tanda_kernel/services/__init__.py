"""Kernel services: ledger mutation, audit trail, job log and guarded transitions."""

from tanda_kernel.services.audit_trail import AuditTrailWriter
from tanda_kernel.services.job_log import JobLogRecorder
from tanda_kernel.services.ledger_service import LedgerService, ReleaseOutcome
from tanda_kernel.services.transitions import compare_and_set

__all__ = [
    "AuditTrailWriter",
    "JobLogRecorder",
    "LedgerService",
    "ReleaseOutcome",
    "compare_and_set",
]
