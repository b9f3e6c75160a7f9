"""
Provider profiles: one per user, created at onboarding.
"""
