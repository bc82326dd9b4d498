"""
Call record storage, webhook reconciliation and call initiation.
"""
