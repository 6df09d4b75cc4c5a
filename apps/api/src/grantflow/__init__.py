"""GrantFlow API - grant application and jury management platform."""
