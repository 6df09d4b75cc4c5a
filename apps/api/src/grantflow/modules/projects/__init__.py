"""
Projects module - Ideas, profiles, plans and memberships.
"""
