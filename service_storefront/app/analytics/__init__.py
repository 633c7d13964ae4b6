"""
Dashboard analytics helpers.
"""
