"""
Shared building blocks: clock, security, pagination, middleware and audit trail.
"""
