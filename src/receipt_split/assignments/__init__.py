from .store import AssignmentStore
from .calculator import compute_splits, total_assigned, render_share_text

__all__ = ["AssignmentStore", "compute_splits", "total_assigned", "render_share_text"]
