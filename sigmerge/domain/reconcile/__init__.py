from .loader import LOAD_PROGRESS_EVERY, LoadCancelled, load_record_set
from .engine import CHECK_PROGRESS_EVERY, FOUND_PROGRESS_EVERY, diff_record_sets
from .writer import write_delta

__all__ = [
    "LOAD_PROGRESS_EVERY",
    "LoadCancelled",
    "CHECK_PROGRESS_EVERY",
    "FOUND_PROGRESS_EVERY",
    "load_record_set",
    "diff_record_sets",
    "write_delta",
]
