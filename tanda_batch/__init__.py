"""
tanda_batch -- scheduled reconciliation jobs.

Each job is an independently triggered, stateless invocation: candidate
selection, strictly sequential per-item processing with one SAVEPOINT per
item, and one Job Log entry per run.  ``JobOrchestrator`` is the entry
point; ``tanda_api`` exposes it over HTTP.

Nothing in ``tanda_kernel`` imports from ``tanda_batch``.
"""

from tanda_batch.orchestrator import JobOrchestrator, default_task_registry

__all__ = ["JobOrchestrator", "default_task_registry"]
