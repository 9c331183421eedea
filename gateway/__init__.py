"""HTTP gateway and dashboard metrics for tutor evaluations."""
