"""Services for probing, state evaluation, alerting, and scheduling."""
from .prober import Prober, ProbeResult, is_up
from .transitions import Transition, evaluate_transition
from .incidents import IncidentCorrelator, IncidentReport
from .notifier import AlertNotifier, render_template
from .outage import OutageDetector
from .retention import RetentionSweeper, delete_old_logs
from .orchestrator import BatchOrchestrator
from .scheduler import SchedulerService

__all__ = [
    "Prober",
    "ProbeResult",
    "is_up",
    "Transition",
    "evaluate_transition",
    "IncidentCorrelator",
    "IncidentReport",
    "AlertNotifier",
    "render_template",
    "OutageDetector",
    "RetentionSweeper",
    "delete_old_logs",
    "BatchOrchestrator",
    "SchedulerService",
]
