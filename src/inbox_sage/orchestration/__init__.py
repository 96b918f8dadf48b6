"""Tiered analysis orchestration and job bookkeeping."""

from .jobs import InvalidJobTransition, JobQueue, JobQueueFull, transition_job
from .network import NetworkMonitor
from .orchestrator import AnalysisOrchestrator

__all__ = [
    "AnalysisOrchestrator",
    "InvalidJobTransition",
    "JobQueue",
    "JobQueueFull",
    "NetworkMonitor",
    "transition_job",
]
