"""End-of-run summaries and pass/fail thresholds."""

from loadprobe.report.summary import (
    evaluate_thresholds,
    read_summary,
    summary_to_dict,
    write_summary,
)

__all__ = ["evaluate_thresholds", "read_summary", "summary_to_dict", "write_summary"]
