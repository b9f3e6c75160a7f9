"""
Affiliation ledger: provider join requests and their approval by company admins.
"""
