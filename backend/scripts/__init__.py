"""
Maintenance scripts

    - seed_data.py: statuses, a published lead workflow and sample leads
    - validate_workflow.py: print a workflow graph and its validation result
    - reconcile_history.py: repair status history for a time window

Usage (from backend/):
    python -m scripts.seed_data
"""
