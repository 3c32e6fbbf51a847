"""Feature modules for ops-rbac."""
