"""Framework integrations for ops-rbac."""
