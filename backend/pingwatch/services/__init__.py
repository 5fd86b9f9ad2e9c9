"""Services for script checks, status aggregation, scheduling and notifications."""
