"""
License expiration alerts and the scheduled expiration sweep.
"""
