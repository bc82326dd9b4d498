"""
Dashboard statistics over stored call records.
"""
