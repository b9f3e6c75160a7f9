"""
Provider licenses and their verification against the issuing board.
"""
