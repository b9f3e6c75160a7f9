"""
Append-only audit trail of privileged admin actions.
"""
