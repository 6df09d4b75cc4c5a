"""
Users module - Accounts, roles and account lifecycle.
"""
