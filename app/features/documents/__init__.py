"""
Credential documents uploaded by providers and reviewed by company admins.
"""
