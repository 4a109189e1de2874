"""
Doctor records, weekly availability and admin management.
"""
