"""Constraint solving for synthesised test values."""

from .backtracking import FailureReason as FailureReason
from .backtracking import SolverError as SolverError
from .backtracking import SolverExhaustedError as SolverExhaustedError
from .backtracking import SolverOptions as SolverOptions
from .backtracking import SolverResult as SolverResult
from .backtracking import SolverTimeoutError as SolverTimeoutError
from .backtracking import find_all_solutions as find_all_solutions
from .backtracking import generate_candidates as generate_candidates
from .backtracking import initialize_domains as initialize_domains
from .backtracking import solve_constraints as solve_constraints
from .backtracking import solve_field as solve_field
from .conflicts import Conflict as Conflict
from .conflicts import ConstraintConflictError as ConstraintConflictError
from .conflicts import detect_conflicts as detect_conflicts
from .conflicts import format_conflicts as format_conflicts
from .constraints import *
from .extract import Violation as Violation
from .extract import boundary_violations as boundary_violations
from .extract import extract_constraints as extract_constraints
from .propagation import PropagationResult as PropagationResult
from .propagation import domain_stats as domain_stats
from .propagation import propagate_constraints as propagate_constraints
from .propagation import reduce_domain as reduce_domain
