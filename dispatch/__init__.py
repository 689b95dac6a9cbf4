#Expose the high-level pipeline pieces:
#Candidate filtering (hard rules)
#Scoring / ranking
#Assignment engine (the "one call" entry point)
#Result + audit records

from .candidate_filter import build_candidates, can_handle_patient, has_required_skills
from .scoring import ScoredCandidate, score_driver, select_best_driver, select_nearest_driver
from .policy import AssignmentPolicy, capacity_aware_policy, default_assignment_policy
from .result import AssignmentMethod, OptimizationResult, OptimizationStrategy, RideAssignment
from .audit import AssignmentAudit, AuditRecorder, AuditStore, RideAssignmentDetail
from .engine import AssignmentEngine, OptimizationError, generate_batch_id #the main class to call to assign a batch of rides

__all__ = [
    "build_candidates",
    "can_handle_patient",
    "has_required_skills",
    "ScoredCandidate",
    "score_driver",
    "select_best_driver",
    "select_nearest_driver",
    "AssignmentPolicy",
    "default_assignment_policy",
    "capacity_aware_policy",
    "AssignmentMethod",
    "OptimizationResult",
    "OptimizationStrategy",
    "RideAssignment",
    "AssignmentAudit",
    "AuditRecorder",
    "AuditStore",
    "RideAssignmentDetail",
    "AssignmentEngine",
    "OptimizationError",
    "generate_batch_id",
]
