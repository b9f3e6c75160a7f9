"""
Companies: credentialing organizations owned by an admin and discovered by enrollment code.
"""
